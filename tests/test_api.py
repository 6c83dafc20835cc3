"""Tests for the HTTP surface: routing, auth, CSRF, CORS and responses."""
import pytest

from guestbook.services import entries as entry_store
from guestbook.services import turnstile
from guestbook.services.app_config import save_settings

ORIGIN = "https://test"


async def _submit(client, **fields):
    data = {"name": "Ada", "message": "Hello there"}
    data.update(fields)
    return await client.post("/api/submit", data=data)


@pytest.mark.asyncio
async def test_home_page(client):
    """Home page renders with short public caching."""
    r = await client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert r.headers["cache-control"] == "public, max-age=60, s-maxage=60"
    assert "No entries yet" in r.text


@pytest.mark.asyncio
async def test_home_page_escapes_entries(client, admin_client):
    r = await _submit(client, name="<script>x</script>", message="hi")
    await admin_client.post(f"/api/approve/{r.json()['id']}")
    r = await client.get("/")
    assert "<script>x</script>" not in r.text
    assert "&lt;script&gt;x&lt;/script&gt;" in r.text


@pytest.mark.asyncio
async def test_submit_pending_with_moderation(client):
    """Moderation is on by default: new entries are pending and not listed."""
    r = await _submit(client, email="ada@example.com")
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["approved"] is False
    assert isinstance(data["id"], int)
    assert r.headers["access-control-allow-origin"] == "*"

    r = await client.get("/api/entries")
    assert r.json()["entries"] == []


@pytest.mark.asyncio
async def test_submit_approved_without_moderation(client):
    await save_settings({"ENTRY_MODERATION": "false"})
    r = await _submit(client)
    assert r.json()["approved"] is True
    r = await client.get("/api/entries")
    entries = r.json()["entries"]
    assert len(entries) == 1
    assert entries[0]["name"] == "Ada"
    assert "email" not in entries[0]


@pytest.mark.asyncio
async def test_submit_validation_error(client):
    r = await _submit(client, site="javascript:alert(1)")
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Invalid website URL. Must start with http:// or https://"}
    assert r.headers["access-control-allow-origin"] == "*"

    r = await _submit(client, name="")
    assert r.status_code == 400
    assert r.json()["error"] == "Name and message are required"


@pytest.mark.asyncio
async def test_submit_requires_captcha_when_enabled(client, monkeypatch):
    await save_settings({"TURNSTILE_ENABLED": "true", "TURNSTILE_SECRET_KEY": "stored-secret"})
    r = await _submit(client)
    assert r.status_code == 400
    assert r.json()["error"] == "Turnstile verification required"

    async def fake(token, secret, **kwargs):
        return token == "good" and secret == "stored-secret"

    monkeypatch.setattr(turnstile, "verify_turnstile", fake)
    r = await _submit(client, **{"cf-turnstile-response": "bad"})
    assert r.status_code == 400
    assert r.json()["error"] == "Verification failed"
    r = await _submit(client, **{"cf-turnstile-response": "good"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_submit_wrong_method(client):
    r = await client.get("/api/submit")
    assert r.status_code == 405


@pytest.mark.asyncio
async def test_entries_pagination_api(client):
    await save_settings({"ENTRY_MODERATION": "false"})
    for n in range(25):
        await _submit(client, name=f"Visitor {n}")
    r = await client.get("/api/entries")
    assert r.status_code == 200
    assert r.headers["cache-control"] == "public, max-age=60, s-maxage=60"
    assert r.headers["access-control-allow-origin"] == "*"
    data = r.json()
    assert len(data["entries"]) == 20
    assert data["nextCursor"] == data["entries"][-1]["id"]

    r = await client.get("/api/entries", params={"cursor": data["nextCursor"]})
    data = r.json()
    assert len(data["entries"]) == 5
    assert data["nextCursor"] is None

    # Garbage cursor falls back to the first page
    r = await client.get("/api/entries", params={"cursor": "abc"})
    assert len(r.json()["entries"]) == 20


@pytest.mark.asyncio
async def test_admin_api_requires_session(client):
    """Admin API answers 401 JSON without a session, never a redirect."""
    for path in ("/api/approve/1", "/api/delete/1", "/api/settings"):
        r = await client.post(path)
        assert r.status_code == 401, path
        assert r.json() == {"success": False, "error": "Unauthorized"}


@pytest.mark.asyncio
async def test_admin_api_rejects_forged_cookie(client):
    client.cookies.set("gb_session", "abc.def")
    r = await client.post("/api/approve/1")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_approve_and_delete_flow(client, admin_client):
    r = await _submit(client)
    entry_id = r.json()["id"]

    r = await admin_client.post(f"/api/approve/{entry_id}", headers={"Origin": ORIGIN})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    r = await admin_client.post(f"/api/approve/{entry_id}")  # idempotent, no Origin header
    assert r.status_code == 200

    r = await client.get("/api/entries")
    assert [e["id"] for e in r.json()["entries"]] == [entry_id]

    r = await admin_client.post(f"/api/delete/{entry_id}")
    assert r.status_code == 200
    r = await admin_client.post(f"/api/delete/{entry_id}")
    assert r.status_code == 200
    r = await client.get("/api/entries")
    assert r.json()["entries"] == []


@pytest.mark.asyncio
async def test_admin_api_rejects_cross_origin(admin_client):
    r = await admin_client.post("/api/approve/1", headers={"Origin": "https://evil.example"})
    assert r.status_code == 403
    assert r.json()["error"] == "CSRF Forbidden: Origin 'https://evil.example' does not match 'https://test'"

    r = await admin_client.post("/api/delete/1", headers={"Origin": "null"})
    assert r.status_code == 403
    assert r.json()["error"] == "CSRF Forbidden: Invalid Origin"


@pytest.mark.asyncio
async def test_same_origin_tolerates_scheme_mismatch(admin_client):
    r = await admin_client.post("/api/approve/1", headers={"Origin": "http://test"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_same_origin_ignores_default_port(admin_client):
    r = await admin_client.post("/api/approve/1", headers={"Origin": "https://test:443"})
    assert r.status_code == 200
    r = await admin_client.post("/api/approve/1", headers={"Origin": "https://TEST"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_same_origin_rejects_other_port(admin_client):
    r = await admin_client.post("/api/approve/1", headers={"Origin": "https://test:8443"})
    assert r.status_code == 403
    assert r.json()["error"] == "CSRF Forbidden: Origin 'https://test:8443' does not match 'https://test'"


@pytest.mark.asyncio
async def test_non_numeric_entry_id_uses_error_shape(admin_client):
    for path in ("/api/approve/abc", "/api/delete/abc"):
        r = await admin_client.post(path, headers={"Origin": ORIGIN})
        assert r.status_code == 422
        body = r.json()
        assert body["success"] is False
        assert body["error"]
        assert "detail" not in body


@pytest.mark.asyncio
async def test_settings_save(admin_client):
    r = await admin_client.post(
        "/api/settings",
        data={"SITENAME": "My Book", "ENTRY_MODERATION": "on"},
        headers={"Origin": ORIGIN},
    )
    assert r.status_code == 200
    assert r.json() == {"success": True}
    r = await admin_client.get("/")
    assert "My Book" in r.text
    # Unticked checkbox turned indexing off
    assert 'name="robots" content="noindex' in r.text


@pytest.mark.asyncio
async def test_login_sets_cookie(client):
    r = await client.post("/login", data={"password": "testpass123"})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    cookie = r.headers["set-cookie"]
    assert cookie.startswith("gb_session=")
    lowered = cookie.lower()
    assert "httponly" in lowered
    assert "secure" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered
    assert "expires=" in lowered


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    r = await client.post("/login", data={"password": "wrong"})
    assert r.status_code == 401
    assert r.json() == {"success": False}
    assert "set-cookie" not in r.headers

    r = await client.post("/login", data={})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_page_redirects_when_logged_in(admin_client):
    r = await admin_client.get("/login")
    assert r.status_code == 302
    assert r.headers["location"] == "/admin"


@pytest.mark.asyncio
async def test_login_page_anonymous(client):
    r = await client.get("/login")
    assert r.status_code == 200
    assert 'type="password"' in r.text


@pytest.mark.asyncio
async def test_logout_clears_cookie(admin_client):
    r = await admin_client.post("/logout", headers={"Origin": ORIGIN})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    cookie = r.headers["set-cookie"].lower()
    assert cookie.startswith("gb_session=")
    assert "1970" in cookie


@pytest.mark.asyncio
async def test_logout_cross_origin_rejected(admin_client):
    r = await admin_client.post("/logout", headers={"Origin": "https://evil.example"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_pages_redirect_to_login(client):
    for path in ("/admin", "/admin/settings", "/admin/embed"):
        r = await client.get(path)
        assert r.status_code == 302, path
        assert r.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_admin_pages_with_session(client, admin_client):
    await _submit(client, name="Pending Person", email="pending@example.com")
    r = await admin_client.get("/admin")
    assert r.status_code == 200
    assert "Pending Person" in r.text
    assert "pending@example.com" in r.text

    r = await admin_client.get("/admin/settings")
    assert r.status_code == 200
    assert 'name="TURNSTILE_ENABLED"' in r.text

    r = await admin_client.get("/admin/embed")
    assert r.status_code == 200
    assert "https://test/client.js" in r.text


@pytest.mark.asyncio
async def test_cors_preflight(client):
    r = await client.options("/api/submit")
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "Content-Type"
    assert r.headers["access-control-max-age"] == "86400"


@pytest.mark.asyncio
async def test_admin_responses_have_no_cors(admin_client):
    r = await admin_client.post("/api/approve/1")
    assert "access-control-allow-origin" not in r.headers


@pytest.mark.asyncio
async def test_exports(client, admin_client):
    r = await _submit(client, email="secret@example.com")
    await _submit(client, name="Still Pending")
    await admin_client.post(f"/api/approve/{r.json()['id']}")

    r = await client.get("/data.json")
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["cache-control"] == "public, max-age=60"
    rows = r.json()
    assert len(rows) == 1
    assert "email" not in rows[0]
    assert rows[0]["created_at"].endswith("Z")

    r = await client.get("/data.csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"] == 'attachment; filename="guestbook-data.csv"'
    assert "secret@example.com" not in r.text
    assert "Still Pending" not in r.text
    assert r.text.splitlines()[0] == "Name,Message,Website,Date"


@pytest.mark.asyncio
async def test_client_script(client):
    r = await client.get("/client.js")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/javascript")
    assert r.headers["access-control-allow-origin"] == "*"
    assert 'const GB_API_URL = "https://test";' in r.text
    assert "const GB_TURNSTILE_ENABLED = false;" in r.text


@pytest.mark.asyncio
async def test_client_script_turnstile_param(client):
    await save_settings({"TURNSTILE_ENABLED": "true"})
    r = await client.get("/client.js")
    assert "const GB_TURNSTILE_ENABLED = true;" in r.text
    r = await client.get("/client.js", params={"turnstile": "false"})
    assert "const GB_TURNSTILE_ENABLED = false;" in r.text


@pytest.mark.asyncio
async def test_favicon_redirect(client):
    await save_settings({"SITE_ICON_URL": "https://cdn.example/icon.png"})
    r = await client.get("/favicon.ico")
    assert r.status_code == 301
    assert r.headers["location"] == "https://cdn.example/icon.png"


@pytest.mark.asyncio
async def test_unknown_path(client):
    r = await client.get("/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Not Found"}


@pytest.mark.asyncio
async def test_unhandled_error_becomes_500(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(entry_store, "list_public", broken)
    r = await client.get("/api/entries")
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "database on fire"}
