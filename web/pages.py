"""HTML pages and the embeddable widget script.

Pure string rendering: every function takes the resolved AppConfig plus data
and returns markup. All user-supplied text goes through ``esc``.
"""
from __future__ import annotations

import html
import json
from dataclasses import dataclass
from typing import Iterable, Optional

from guestbook.models import Entry
from guestbook.services.app_config import AppConfig
from guestbook.services.entries import format_timestamp

TURNSTILE_SCRIPT = "https://challenges.cloudflare.com/turnstile/v0/api.js?render=explicit"


@dataclass(frozen=True)
class PageAssets:
    """Static CSS/JS shared by the pages. Built once at startup."""

    css: str
    client_js: str
    widget_css: str


def load_assets() -> PageAssets:
    return PageAssets(css=_BASE_CSS, client_js=_CLIENT_COMMON_JS, widget_css=_WIDGET_CSS)


def esc(value) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _js(value) -> str:
    """Embed a Python value as a JS literal inside a <script> block."""
    return json.dumps(value).replace("</", "<\\/")


def parse_nav_links(raw: str) -> list[dict]:
    """NAV_LINKS is a JSON list of {label, url}; anything malformed yields []."""
    try:
        links = json.loads(raw or "[]")
    except ValueError:
        return []
    if not isinstance(links, list):
        return []
    return [link for link in links if isinstance(link, dict) and link.get("label") and link.get("url")]


def _head(title: str, cfg: AppConfig, assets: PageAssets, extra_head: str = "", no_index: bool = False) -> str:
    meta = []
    if no_index or not cfg.allow_indexing:
        meta.append('<meta name="robots" content="noindex, nofollow">')
    if cfg.site_description:
        meta.append(f'<meta name="description" content="{esc(cfg.site_description)}">')
        meta.append(f'<meta property="og:description" content="{esc(cfg.site_description)}">')
    if cfg.site_cover_image_url:
        meta.append(f'<meta property="og:image" content="{esc(cfg.site_cover_image_url)}">')
    if cfg.canonical_url and not no_index:
        meta.append(f'<link rel="canonical" href="{esc(cfg.canonical_url)}">')
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{esc(title)}</title>
<meta property="og:title" content="{esc(title)}">
{''.join(meta)}
<link rel="icon" href="{esc(cfg.site_icon_url)}">
<style>{assets.css}{cfg.custom_css}</style>
{extra_head}
</head>"""


def _entry_html(entry: Entry, admin: bool = False) -> str:
    name = esc(entry.name)
    if entry.site:
        name = f'<a href="{esc(entry.site)}" target="_blank" rel="nofollow noopener">{name}</a>'
    message = esc(entry.message).replace("\n", "<br>")
    date = esc(format_timestamp(entry.created_at))
    if not admin:
        return (
            f'<div class="entry"><div class="entry-header"><strong>{name}</strong>'
            f'<span class="client-date" data-date="{date}">{date}</span></div>'
            f'<div class="entry-message">{message}</div></div>'
        )
    status = "Approved" if entry.approved else "Pending"
    actions = "" if entry.approved else f'<button onclick="approveEntry({entry.id})">Approve</button>'
    actions += f'<button class="danger" onclick="deleteEntry({entry.id})">Delete</button>'
    return (
        f'<tr id="entry-{entry.id}"><td>{name}<br><small>{esc(entry.email or "")}</small></td>'
        f'<td>{message}</td><td><span class="client-date" data-date="{date}">{date}</span></td>'
        f'<td class="status-{status.lower()}">{status}</td><td>{actions}</td></tr>'
    )


def render_home(cfg: AppConfig, assets: PageAssets, entries: Iterable[Entry], next_cursor: Optional[int]) -> str:
    entries = list(entries)
    nav = "".join(
        f'<a href="{esc(link["url"])}">{esc(link["label"])}</a>' for link in parse_nav_links(cfg.nav_links)
    )
    listing = "".join(_entry_html(e) for e in entries) or (
        f'<div class="empty-state"><img src="{esc(cfg.site_icon_url)}" alt="" width="64" height="64">'
        "<p>No entries yet. Be the first to sign!</p></div>"
    )
    captcha = '<div id="turnstile-container"></div>' if cfg.turnstile_enabled else ""
    extra_head = f"<script>{assets.client_js}</script>"
    if cfg.turnstile_enabled:
        extra_head = f'<script src="{TURNSTILE_SCRIPT}" async defer></script>' + extra_head
    load_more = "" if next_cursor is None else '<button id="load-more">Load more</button>'
    intro = f'<div class="intro">{cfg.site_intro}</div>' if cfg.site_intro else ""
    return f"""{_head(cfg.sitename, cfg, assets, extra_head)}
<body>
<main class="container">
<header><h1>{esc(cfg.sitename)}</h1><nav>{nav}</nav></header>
{intro}
<form id="entry-form">
  <input name="name" placeholder="Name" maxlength="100" required>
  <input name="site" type="url" placeholder="Website (optional)" maxlength="255">
  <input name="email" type="email" placeholder="Email (optional, not shown)" maxlength="255">
  <textarea name="message" placeholder="Message" maxlength="2000" required></textarea>
  {captcha}
  <button type="button" id="submit-btn">Sign</button>
  <div id="form-status"></div>
</form>
<section id="entries">{listing}</section>
{load_more}
</main>
<script>
const TURNSTILE_ENABLED = {_js(cfg.turnstile_enabled)};
const TURNSTILE_SITE_KEY = {_js(cfg.turnstile_site_key)};
let nextCursor = {_js(next_cursor)};
let widgetId = null;
function esc(t) {{ const d = document.createElement('div'); d.textContent = t || ''; return d.innerHTML; }}
function renderTurnstile() {{
  if (!TURNSTILE_ENABLED || !window.turnstile || widgetId !== null) return;
  widgetId = turnstile.render('#turnstile-container', {{ sitekey: TURNSTILE_SITE_KEY }});
}}
window.addEventListener('load', renderTurnstile);
document.getElementById('submit-btn').addEventListener('click', async () => {{
  const form = document.getElementById('entry-form');
  const status = document.getElementById('form-status');
  const data = new FormData(form);
  if (TURNSTILE_ENABLED && window.turnstile) data.set('cf-turnstile-response', turnstile.getResponse(widgetId) || '');
  const r = await fetch('/api/submit', {{ method: 'POST', body: data }});
  const result = await r.json();
  if (result.success) {{
    form.reset();
    status.textContent = result.approved ? 'Thanks for signing!' : 'Thanks! Your entry is awaiting approval.';
    if (result.approved) setTimeout(() => location.reload(), 800);
  }} else {{
    status.textContent = result.error || 'Something went wrong.';
  }}
  if (TURNSTILE_ENABLED && window.turnstile) turnstile.reset(widgetId);
}});
const more = document.getElementById('load-more');
if (more) more.addEventListener('click', async () => {{
  const r = await fetch('/api/entries?cursor=' + nextCursor);
  const result = await r.json();
  const list = document.getElementById('entries');
  for (const e of result.entries) {{
    const name = e.site ? '<a href="' + esc(e.site) + '" target="_blank" rel="nofollow noopener">' + esc(e.name) + '</a>' : esc(e.name);
    list.insertAdjacentHTML('beforeend', '<div class="entry"><div class="entry-header"><strong>' + name +
      '</strong><span class="client-date" data-date="' + esc(e.created_at) + '">' + esc(e.created_at) +
      '</span></div><div class="entry-message">' + esc(e.message).replace(/\\n/g, '<br>') + '</div></div>');
  }}
  formatClientDates();
  nextCursor = result.nextCursor;
  if (!nextCursor) more.remove();
}});
</script>
</body>
</html>"""


def render_login(cfg: AppConfig, assets: PageAssets) -> str:
    return f"""{_head('Login - ' + cfg.sitename, cfg, assets, no_index=True)}
<body>
<main class="container narrow">
<h1>Admin login</h1>
<form id="login-form">
  <input type="password" name="password" placeholder="Password" required autofocus>
  <button type="submit">Log in</button>
  <div id="login-error"></div>
</form>
</main>
<script>
document.getElementById('login-form').addEventListener('submit', async (e) => {{
  e.preventDefault();
  const r = await fetch('/login', {{ method: 'POST', body: new FormData(e.target) }});
  if (r.ok) {{ location.href = '/admin'; }}
  else {{ document.getElementById('login-error').textContent = 'Invalid password'; }}
}});
</script>
</body>
</html>"""


def _admin_header(active: str) -> str:
    links = [("/admin", "Entries"), ("/admin/settings", "Settings"), ("/admin/embed", "Embed")]
    nav = "".join(
        f'<a href="{href}" class="{"active" if href == active else ""}">{label}</a>' for href, label in links
    )
    return f'<header class="admin-header"><nav>{nav}<a href="/" target="_blank">View site</a></nav>' \
           '<button onclick="logout()">Logout</button></header>'


_ADMIN_JS = """
async function logout() {
  await fetch('/logout', { method: 'POST' });
  location.href = '/login';
}
"""


def render_admin(cfg: AppConfig, assets: PageAssets, entries: Iterable[Entry]) -> str:
    rows = "".join(_entry_html(e, admin=True) for e in entries) or '<tr><td colspan="5">No entries yet.</td></tr>'
    return f"""{_head('Admin - ' + cfg.sitename, cfg, assets, f'<script>{assets.client_js}</script>', no_index=True)}
<body>
<main class="container wide">
{_admin_header('/admin')}
<table class="entries">
<thead><tr><th>Name</th><th>Message</th><th>Date</th><th>Status</th><th></th></tr></thead>
<tbody>{rows}</tbody>
</table>
</main>
<script>
{_ADMIN_JS}
async function approveEntry(id) {{
  const r = await fetch('/api/approve/' + id, {{ method: 'POST' }});
  if (r.ok) location.reload(); else alert('Failed to approve entry');
}}
async function deleteEntry(id) {{
  if (!confirm('Delete this entry?')) return;
  const r = await fetch('/api/delete/' + id, {{ method: 'POST' }});
  if (r.ok) document.getElementById('entry-' + id).remove(); else alert('Failed to delete entry');
}}
</script>
</body>
</html>"""


def _text_field(key: str, label: str, value: str, kind: str = "text") -> str:
    return (
        f'<label for="{key}">{label}</label>'
        f'<input type="{kind}" id="{key}" name="{key}" value="{esc(value)}">'
    )


def _checkbox(key: str, label: str, checked: bool) -> str:
    return (
        f'<div class="checkbox"><input type="checkbox" id="{key}" name="{key}" {"checked" if checked else ""}>'
        f'<label for="{key}">{label}</label></div>'
    )


def render_settings(cfg: AppConfig, assets: PageAssets) -> str:
    fields = "".join([
        _text_field("SITENAME", "Site name", cfg.sitename),
        '<label for="SITE_INTRO">Intro (HTML allowed)</label>'
        f'<textarea id="SITE_INTRO" name="SITE_INTRO">{esc(cfg.site_intro)}</textarea>',
        _text_field("SITE_DESCRIPTION", "Description", cfg.site_description),
        _text_field("SITE_ICON_URL", "Icon URL", cfg.site_icon_url, "url"),
        _text_field("SITE_COVER_IMAGE_URL", "Cover image URL", cfg.site_cover_image_url, "url"),
        _text_field("CANONICAL_URL", "Canonical URL", cfg.canonical_url, "url"),
        '<label for="NAV_LINKS">Navigation links (JSON list of {"label", "url"})</label>'
        f'<textarea id="NAV_LINKS" name="NAV_LINKS">{esc(cfg.nav_links)}</textarea>',
        _checkbox("ALLOW_INDEXING", "Allow search engine indexing", cfg.allow_indexing),
        _checkbox("ENTRY_MODERATION", "Hold new entries for approval", cfg.entry_moderation),
        _checkbox("TURNSTILE_ENABLED", "Enable Turnstile CAPTCHA", cfg.turnstile_enabled),
        _text_field("TURNSTILE_SITE_KEY", "Site Key", cfg.turnstile_site_key),
        _text_field("TURNSTILE_SECRET_KEY", "Secret Key", cfg.turnstile_secret_key, "password"),
        '<label for="CUSTOM_CSS">Custom CSS</label>'
        f'<textarea id="CUSTOM_CSS" name="CUSTOM_CSS">{esc(cfg.custom_css)}</textarea>',
    ])
    return f"""{_head('Settings - ' + cfg.sitename, cfg, assets, no_index=True)}
<body>
<main class="container wide">
{_admin_header('/admin/settings')}
<form id="settings-form">{fields}<button type="submit">Save</button><div id="settings-status"></div></form>
</main>
<script>
{_ADMIN_JS}
document.getElementById('settings-form').addEventListener('submit', async (e) => {{
  e.preventDefault();
  const r = await fetch('/api/settings', {{ method: 'POST', body: new FormData(e.target) }});
  const result = await r.json();
  document.getElementById('settings-status').textContent = result.success ? 'Saved' : (result.error || 'Failed to save');
}});
</script>
</body>
</html>"""


def render_embed(cfg: AppConfig, assets: PageAssets, api_base: str) -> str:
    snippet = (
        f'<div data-gb data-gb-api-url="{api_base}" '
        f'data-gb-turnstile-key="{cfg.turnstile_site_key or "YOUR_TURNSTILE_SITE_KEY"}"></div>\n'
        f'<script src="{api_base}/client.js"></script>'
    )
    return f"""{_head('Embed - ' + cfg.sitename, cfg, assets, no_index=True)}
<body>
<main class="container wide">
{_admin_header('/admin/embed')}
<h2>Embed the guestbook</h2>
<p>Paste this snippet into any page. Add <code>?turnstile=false</code> to the script URL to disable the CAPTCHA,
or <code>data-gb-form="false"</code> to show entries only.</p>
<pre id="embed-code">{esc(snippet)}</pre>
<button onclick="navigator.clipboard.writeText(document.getElementById('embed-code').textContent)">Copy</button>
</main>
<script>{_ADMIN_JS}</script>
</body>
</html>"""


def render_client_script(cfg: AppConfig, assets: PageAssets, api_base: str, turnstile_enabled: bool) -> str:
    """Self-contained widget: renders entries and the form into [data-gb] containers."""
    return f"""(function() {{
  const GB_API_URL = {_js(api_base)};
  const GB_TURNSTILE_SITE_KEY = {_js(cfg.turnstile_site_key)};
  const GB_TURNSTILE_ENABLED = {_js(turnstile_enabled)};
  if (GB_TURNSTILE_ENABLED && !document.querySelector('script[src*="turnstile"]')) {{
    const s = document.createElement('script');
    s.src = {_js(TURNSTILE_SCRIPT)}; s.async = true; s.defer = true;
    document.head.appendChild(s);
  }}
  function esc(t) {{ const d = document.createElement('div'); d.textContent = t || ''; return d.innerHTML; }}
  function GuestbookWidget(config) {{
    this.container = typeof config.container === 'string' ? document.querySelector(config.container) : config.container;
    this.apiUrl = config.apiUrl || GB_API_URL;
    this.turnstileSiteKey = String(config.turnstileSiteKey || GB_TURNSTILE_SITE_KEY || '');
    this.turnstileEnabled = config.turnstileEnabled !== undefined ? config.turnstileEnabled : GB_TURNSTILE_ENABLED;
    this.showForm = config.showForm !== false;
    this.widgetId = null;
    if (this.container) this.init();
  }}
  GuestbookWidget.prototype.init = function() {{
    const self = this;
    this.container.innerHTML = (this.showForm ?
      '<form class="gb-form"><input name="name" placeholder="Name" maxlength="100">' +
      '<input name="site" placeholder="Website (optional)" maxlength="255">' +
      '<textarea name="message" placeholder="Message" maxlength="2000"></textarea>' +
      '<div class="gb-turnstile"></div><button type="button" class="gb-submit">Submit</button>' +
      '<div class="gb-status"></div></form>' : '') + '<div class="gb-entries-list"></div>';
    if (this.showForm) {{
      if (this.turnstileEnabled) {{
        const render = function() {{
          if (window.turnstile) {{ self.widgetId = turnstile.render(self.container.querySelector('.gb-turnstile'), {{ sitekey: self.turnstileSiteKey }}); }}
          else {{ setTimeout(render, 200); }}
        }};
        render();
      }}
      this.container.querySelector('.gb-submit').addEventListener('click', function() {{ self.handleSubmit(); }});
    }}
    this.loadEntries();
  }};
  GuestbookWidget.prototype.handleSubmit = async function() {{
    const form = this.container.querySelector('.gb-form');
    const status = this.container.querySelector('.gb-status');
    const data = new FormData(form);
    if (this.turnstileEnabled && window.turnstile) data.set('cf-turnstile-response', turnstile.getResponse(this.widgetId) || '');
    try {{
      const r = await fetch(this.apiUrl + '/api/submit', {{ method: 'POST', body: data }});
      const result = await r.json();
      if (result.success) {{
        form.reset();
        status.className = 'gb-status gb-success';
        status.textContent = result.approved ? 'Thanks for signing!' : 'Thanks! Your entry is awaiting approval.';
        if (result.approved) this.loadEntries();
      }} else {{
        status.className = 'gb-status gb-error';
        status.textContent = result.error || 'Submission failed.';
      }}
    }} catch (e) {{
      status.className = 'gb-status gb-error';
      status.textContent = 'Submission failed.';
    }}
    if (this.turnstileEnabled && window.turnstile) turnstile.reset(this.widgetId);
  }};
  GuestbookWidget.prototype.loadEntries = async function() {{
    const list = this.container.querySelector('.gb-entries-list');
    list.innerHTML = '<div class="gb-loading">Loading entries...</div>';
    try {{
      const r = await fetch(this.apiUrl + '/api/entries');
      const result = await r.json();
      if (!result.entries.length) {{ list.innerHTML = '<div class="gb-no-entries">No entries yet.</div>'; return; }}
      list.innerHTML = result.entries.map(function(e) {{
        const name = e.site ? '<a href="' + esc(e.site) + '" target="_blank" rel="nofollow">' + esc(e.name) + '</a>' : esc(e.name);
        return '<div class="gb-entry"><div class="gb-entry-header"><strong>' + name + '</strong>' +
          '<span class="gb-entry-date">' + new Date(e.created_at).toLocaleString() + '</span></div>' +
          '<div class="gb-entry-message">' + esc(e.message).replace(/\\n/g, '<br>') + '</div></div>';
      }}).join('');
    }} catch (e) {{
      list.innerHTML = '<div class="gb-error">Failed to load entries.</div>';
    }}
  }};
  const style = document.createElement('style');
  style.textContent = {_js(assets.widget_css)};
  document.head.appendChild(style);
  window.GuestbookWidget = GuestbookWidget;
  document.addEventListener('DOMContentLoaded', function() {{
    document.querySelectorAll('[data-gb]').forEach(function(c) {{
      new GuestbookWidget({{
        container: c,
        apiUrl: c.getAttribute('data-gb-api-url') || GB_API_URL,
        turnstileSiteKey: c.getAttribute('data-gb-turnstile-key') || GB_TURNSTILE_SITE_KEY,
        showForm: c.getAttribute('data-gb-form') !== 'false'
      }});
    }});
  }});
}})();"""


_BASE_CSS = """
:root { --primary: #2563eb; --primary-hover: #1d4ed8; --text: #1f2937; --muted: #6b7280; --border: #e5e7eb; --bg: #fff; }
* { box-sizing: border-box; }
body { margin: 0; font-family: system-ui, -apple-system, sans-serif; color: var(--text); background: var(--bg); line-height: 1.5; }
.container { max-width: 640px; margin: 0 auto; padding: 2rem 1rem; }
.container.narrow { max-width: 360px; }
.container.wide { max-width: 960px; }
header nav a, .admin-header nav a { margin-right: 1rem; color: var(--primary); text-decoration: none; }
.admin-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 1.5rem; }
.admin-header a.active { font-weight: bold; }
.intro { margin-bottom: 1.5rem; }
form input, form textarea { display: block; width: 100%; padding: .6rem; margin-bottom: .75rem; border: 1px solid var(--border); border-radius: 6px; font: inherit; }
form textarea { min-height: 120px; }
form .checkbox { display: flex; gap: .5rem; align-items: center; margin-bottom: .75rem; }
form .checkbox input { width: auto; margin: 0; }
button { padding: .5rem 1rem; border: 0; border-radius: 6px; background: var(--primary); color: #fff; cursor: pointer; font: inherit; }
button:hover { background: var(--primary-hover); }
button.danger { background: #dc2626; margin-left: .25rem; }
.entry { padding: 1rem 0; border-bottom: 1px solid var(--border); }
.entry-header { display: flex; justify-content: space-between; gap: 1rem; }
.entry-header span, small { color: var(--muted); font-size: .85em; }
.empty-state { text-align: center; color: var(--muted); padding: 2rem 0; }
table.entries { width: 100%; border-collapse: collapse; }
table.entries td, table.entries th { padding: .5rem; border-bottom: 1px solid var(--border); text-align: left; vertical-align: top; }
.status-pending { color: #b45309; }
.status-approved { color: #047857; }
pre { background: #f3f4f6; padding: 1rem; border-radius: 6px; white-space: pre-wrap; }
"""

_CLIENT_COMMON_JS = """
function formatDateString(dateStr) {
  const d = new Date(dateStr);
  if (isNaN(d.getTime())) return dateStr;
  return d.toLocaleString(undefined, { month: 'short', day: 'numeric', year: 'numeric', hour: 'numeric', minute: '2-digit' });
}
function formatClientDates() {
  document.querySelectorAll('.client-date').forEach(function(el) {
    const dateStr = el.getAttribute('data-date');
    if (dateStr) el.textContent = formatDateString(dateStr);
    el.classList.remove('client-date');
  });
}
document.addEventListener('DOMContentLoaded', formatClientDates);
"""

_WIDGET_CSS = """
.gb-form input, .gb-form textarea { display: block; width: 100%; padding: 8px; margin-bottom: 10px; box-sizing: border-box; }
.gb-submit { padding: 8px 16px; cursor: pointer; }
.gb-success { padding: 10px; background: #ecfdf5; color: #065f46; border-radius: 4px; }
.gb-error { padding: 10px; background: #fef2f2; color: #991b1b; border-radius: 4px; }
.gb-entry { margin-bottom: 20px; padding: 15px; border: 1px solid rgba(0,0,0,.1); border-radius: 10px; }
.gb-entry-header { display: flex; flex-wrap: wrap; gap: 10px; margin-bottom: 8px; align-items: center; }
.gb-entry-date { opacity: .7; font-size: .85em; margin-left: auto; }
.gb-entry-message { line-height: 1.6; }
.gb-loading, .gb-no-entries { text-align: center; opacity: .7; padding: 20px; }
"""
