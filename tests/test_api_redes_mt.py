"""
Tests HTTP de /redesmt.
"""

import pytest


@pytest.fixture()
def owner_id(api, auth_headers):
    resp = api.post(
        "/subestacoes",
        json={"codigo": "SE1", "nome": "Centro", "latitude": 0, "longitude": 0},
        headers=auth_headers,
    )
    return resp.json()["id"]


def test_create_without_substation_is_invalid_state(api, auth_headers, store):
    resp = api.post("/redesmt", json={"codigo": "R1"}, headers=auth_headers)
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "INVALID_STATE"
    assert "vinculada a una subestación" in detail["message"]
    assert store.redes == {}


def test_create_and_fetch(api, auth_headers, owner_id):
    resp = api.post(
        "/redesmt",
        json={"codigo": "R1", "nome": "Norte", "tensaoNominal": 13.8, "subestacaoId": owner_id},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    created = resp.json()
    assert created["subestacaoId"] == owner_id
    assert created["tensaoNominal"] == pytest.approx(13.8)

    assert api.get(f"/redesmt/{created['id']}", headers=auth_headers).json() == created
    assert api.get("/redesmt", headers=auth_headers).json() == [created]

    substation = api.get(f"/subestacoes/{owner_id}", headers=auth_headers).json()
    assert [r["codigo"] for r in substation["redesMT"]] == ["R1"]


def test_create_for_unknown_substation_is_400(api, auth_headers):
    resp = api.post("/redesmt", json={"codigo": "R1", "subestacaoId": 77}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INTEGRITY_VIOLATION"


def test_create_duplicate_is_conflict(api, auth_headers, owner_id):
    payload = {"codigo": "R1", "subestacaoId": owner_id}
    api.post("/redesmt", json=payload, headers=auth_headers)
    resp = api.post("/redesmt", json=payload, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "CONFLICT"


def test_update_replaces_network(api, auth_headers, owner_id):
    created = api.post(
        "/redesmt",
        json={"codigo": "R1", "nome": "Norte", "subestacaoId": owner_id},
        headers=auth_headers,
    ).json()
    resp = api.put(
        f"/redesmt/{created['id']}",
        json={"codigo": "R2", "tensaoNominal": 34.5, "subestacaoId": owner_id},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == created["id"]
    assert body["codigo"] == "R2"
    assert body["nome"] is None


def test_get_missing_is_404(api, auth_headers):
    assert api.get("/redesmt/3", headers=auth_headers).status_code == 404


def test_update_missing_is_404(api, auth_headers, owner_id):
    resp = api.put("/redesmt/3", json={"codigo": "R1", "subestacaoId": owner_id}, headers=auth_headers)
    assert resp.status_code == 404


def test_delete(api, auth_headers, owner_id):
    created = api.post("/redesmt", json={"codigo": "R1", "subestacaoId": owner_id}, headers=auth_headers).json()
    resp = api.delete(f"/redesmt/{created['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Red MT eliminada correctamente."}
    assert api.delete(f"/redesmt/{created['id']}", headers=auth_headers).status_code == 404


def test_invalid_code_length_is_400(api, auth_headers, owner_id):
    resp = api.post("/redesmt", json={"codigo": "R12345", "subestacaoId": owner_id}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"
