import pytest


async def fetch_form_fields(client, soup):
    resp = await client.get("/")
    assert resp.status_code == 200
    dom = soup(resp.text)
    return {el["name"]: el["value"] for el in dom.select('form input[type="hidden"]')}


@pytest.mark.asyncio
async def test_form_renders_token_pair(client, soup):
    fields = await fetch_form_fields(client, soup)

    assert set(fields) == {"csrf_name", "csrf_value"}
    assert fields["csrf_name"].startswith("csrf")
    assert len(fields["csrf_value"]) == 32


@pytest.mark.asyncio
async def test_each_request_gets_a_new_pair(client, soup):
    first = await fetch_form_fields(client, soup)
    second = await fetch_form_fields(client, soup)
    assert first["csrf_name"] != second["csrf_name"]
    assert first["csrf_value"] != second["csrf_value"]


@pytest.mark.asyncio
async def test_submit_with_valid_token(client, soup):
    fields = await fetch_form_fields(client, soup)

    resp = await client.post("/submit", data={**fields, "message": "hello"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["message"] == "hello"
    assert body["next_token"]["name"] != fields["csrf_name"]


@pytest.mark.asyncio
async def test_replayed_token_is_rejected(client, soup):
    fields = await fetch_form_fields(client, soup)

    first = await client.post("/submit", data=fields)
    second = await client.post("/submit", data=fields)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.headers["content-type"].startswith("text/plain")
    assert second.text == "Failed CSRF check!"


@pytest.mark.asyncio
async def test_bogus_token_is_rejected(client, soup):
    await fetch_form_fields(client, soup)

    resp = await client.post("/submit", data={"csrf_name": "bogus", "csrf_value": "x"})

    assert resp.status_code == 400
    assert resp.text == "Failed CSRF check!"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client):
    resp = await client.post("/submit", data={"message": "hello"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_token_from_another_session_is_rejected(client, soup):
    fields = await fetch_form_fields(client, soup)
    client.cookies.clear()

    resp = await client.post("/submit", data=fields)

    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_retry_after_failure_succeeds(client, soup):
    await fetch_form_fields(client, soup)
    await client.post("/submit", data={"csrf_name": "bogus", "csrf_value": "x"})

    fields = await fetch_form_fields(client, soup)
    resp = await client.post("/submit", data=fields)

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


@pytest.mark.asyncio
async def test_token_from_a_later_page_is_accepted(client, soup):
    await fetch_form_fields(client, soup)
    fields = await fetch_form_fields(client, soup)

    resp = await client.post("/submit", data=fields)

    assert resp.status_code == 200
