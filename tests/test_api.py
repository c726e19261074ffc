import pytest


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_list_and_get_formulas(client):
    r = client.get("/api/formulas")
    assert r.status_code == 200
    formulas = r.json()
    assert len(formulas) == 29
    assert formulas[0]["id"] == "geschwindigkeit"

    r = client.get("/api/formulas/ohms-law")
    assert r.json()["name"] == "Ohmsches Gesetz"

    r = client.get("/api/formulas/nope")
    assert r.status_code == 404
    assert r.json() == {"message": "Formel nicht gefunden"}


def test_solve_endpoint(client):
    r = client.post("/api/formulas/ohms-law/solve", json={"target": "I", "values": {"U": "230", "R": "100"}})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "solved"
    assert body["result"]["value"] == pytest.approx(2.3)
    assert body["result"]["unit"] == "A"
    assert body["trace"][0]["kind"] == "inputs_parsed"


def test_solve_unsolvable_and_non_finite(client):
    r = client.post("/api/formulas/beschleunigte-bewegung/solve",
                    json={"target": "a", "values": {"s": "100", "t": "10", "v_0": "5"}})
    assert r.status_code == 200
    assert r.json()["status"] == "unsolvable"
    assert r.json()["result"] is None

    r = client.post("/api/formulas/ohms-law/solve", json={"target": "I", "values": {"U": "1", "R": "0"}})
    assert r.json()["status"] == "non_finite"
    assert r.json()["result"]["value"] == "inf"


def test_solve_errors(client):
    r = client.post("/api/formulas/nope/solve", json={"target": "x", "values": {}})
    assert r.status_code == 404
    r = client.post("/api/formulas/ohms-law/solve", json={"values": {"U": "1"}})
    assert r.status_code == 400
    assert r.json() == {"message": "Zielgröße erforderlich"}
    r = client.post("/api/formulas/ohms-law/solve", content=b"not json",
                    headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert "message" in r.json()


def test_solvable_endpoint(client):
    r = client.post("/api/formulas/ohms-law/solvable", json={"values": {"U": 230, "R": 100}})
    assert r.json() == {"formulaId": "ohms-law", "targets": ["I"]}


def test_topics_and_search(client):
    assert len(client.get("/api/topics").json()) == 11
    assert client.get("/api/topics/kinematik").json()["name"] == "Kinematik"
    r = client.get("/api/topics/nope")
    assert r.status_code == 404
    assert r.json() == {"message": "Thema nicht gefunden"}

    r = client.get("/api/search", params={"q": "ohm"})
    assert "ohms-law" in [f["id"] for f in r.json()["formulas"]]
    r = client.get("/api/search")
    assert r.status_code == 400
    assert r.json() == {"message": "Suchbegriff erforderlich"}


def test_forum_flow(client):
    assert [t["id"] for t in client.get("/api/forum/topics").json()] == [1, 2, 3, 4]
    r = client.post("/api/forum/topics", json={"title": "Optik", "category": "basic",
                                               "author": "Lea", "content": "Warum ist der Himmel blau?"})
    assert r.status_code == 201
    topic = r.json()
    assert topic["id"] == 5
    assert topic["replies"] == []

    r = client.post("/api/forum/topics/5/replies", json={"author": "Max", "content": "Rayleigh-Streuung."})
    assert r.status_code == 201
    assert r.json()["author"] == "Max"
    assert len(client.get("/api/forum/topics/5").json()["replies"]) == 1

    r = client.post("/api/forum/topics", json={"title": "Nur Titel"})
    assert r.status_code == 400
    assert client.get("/api/forum/topics/abc").status_code == 404
    assert client.post("/api/forum/topics/99/replies", json={"author": "a", "content": "b"}).status_code == 404


def test_register_login_logout(client):
    r = client.post("/api/register", json={"username": "anna", "password": "geheim123", "email": "a@x.org"})
    assert r.status_code == 201
    user_id = r.json()["userId"]

    r = client.post("/api/register", json={"username": "anna", "password": "x", "email": "b@x.org"})
    assert r.status_code == 400
    assert r.json() == {"message": "Benutzername ist bereits vergeben"}

    assert client.get("/api/auth/status").json() == {"isLoggedIn": False}
    r = client.post("/api/login", json={"username": "anna", "password": "falsch"})
    assert r.status_code == 401
    assert r.json() == {"message": "Ungültiger Benutzername oder Passwort"}

    r = client.post("/api/login", json={"username": "anna", "password": "geheim123"})
    assert r.status_code == 200
    assert r.json()["user"] == {"id": user_id, "username": "anna", "email": "a@x.org"}
    assert "physik_session" in r.headers["set-cookie"]
    assert "httponly" in r.headers["set-cookie"].lower()

    assert client.get("/api/auth/status").json() == {"isLoggedIn": True, "username": "anna"}
    assert client.get("/api/user").json()["username"] == "anna"

    assert client.post("/api/logout").json() == {"message": "Erfolgreich abgemeldet"}
    assert client.get("/api/auth/status").json() == {"isLoggedIn": False}
    assert client.get("/api/user").status_code == 401


def test_register_missing_fields(client):
    r = client.post("/api/register", json={"username": "anna"})
    assert r.status_code == 400
    assert r.json() == {"message": "Alle Felder müssen ausgefüllt werden"}


def test_favorites_require_login(client):
    r = client.get("/api/favorites/formulas")
    assert r.status_code == 401
    assert r.json() == {"message": "Nicht angemeldet"}
    assert client.post("/api/favorites/formulas", json={"formulaId": "ohms-law"}).status_code == 401


def test_favorites_flow(client, login):
    login()
    r = client.post("/api/favorites/formulas", json={"formulaId": "ohms-law"})
    assert r.json() == {"message": "Formel zu Favoriten hinzugefügt"}
    client.post("/api/favorites/formulas", json={"formulaId": "geschwindigkeit"})

    r = client.post("/api/favorites/formulas", json={"formulaId": "ohms-law"})
    assert r.status_code == 400
    assert client.post("/api/favorites/formulas", json={"formulaId": "nope"}).status_code == 404
    assert client.post("/api/favorites/formulas", json={}).status_code == 400

    ids = [f["id"] for f in client.get("/api/favorites/formulas").json()]
    assert ids == ["geschwindigkeit", "ohms-law"]

    r = client.delete("/api/favorites/formulas/ohms-law")
    assert r.json() == {"message": "Formel aus Favoriten entfernt"}
    assert client.delete("/api/favorites/formulas/ohms-law").status_code == 404
    assert [f["id"] for f in client.get("/api/favorites/formulas").json()] == ["geschwindigkeit"]


def test_app_shell_and_unknown_api_routes(client):
    r = client.get("/formeln/ohms-law")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "Physik Formelsammlung" in r.text

    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"message": "Nicht gefunden"}


def test_register_and_login_with_long_password(client):
    body = {"username": "lang", "password": "x" * 80, "email": "l@x.org"}
    r = client.post("/api/register", json=body)
    assert r.status_code == 201
    r = client.post("/api/login", json={"username": "lang", "password": "x" * 80})
    assert r.status_code == 200


def test_logout_clears_cookie_with_login_attributes(client, login):
    login()
    r = client.post("/api/logout")
    cookie = r.headers["set-cookie"].lower()
    assert "physik_session=" in cookie
    assert "httponly" in cookie
    assert "samesite=lax" in cookie
    assert "max-age=0" in cookie


def test_logout_cookie_secure_flag_follows_settings(settings):
    from dataclasses import replace
    from fastapi.testclient import TestClient
    from api.main import create_app

    with TestClient(create_app(replace(settings, session_cookie_secure=True))) as c:
        assert "secure" in c.post("/api/logout").headers["set-cookie"].lower()


def test_wrong_method_has_german_message(client):
    r = client.post("/api/formulas")
    assert r.status_code == 405
    assert r.json() == {"message": "Methode nicht erlaubt"}


def test_forum_topic_id_must_be_plain_digits(client):
    assert client.get("/api/forum/topics/3").status_code == 200
    for raw in ("0_3", "+3", "3.0"):
        r = client.get(f"/api/forum/topics/{raw}")
        assert r.status_code == 404
        assert r.json() == {"message": "Forenthema nicht gefunden"}
