"""
Tests de bout en bout API + base SQLite en mémoire.
Propriétés vérifiées : tout-ou-rien, alignement des ids, idempotence des lectures,
relevés de test stockés mais invisibles.
"""

from sqlalchemy import func, select

from app.models.sample import Sample


def make_scan_payload(local_id, **kwargs) -> dict:
    payload = {
        "device_id": "tab-01",
        "sample": f"S{local_id}",
        "well_name": "W1",
        "block": "B1",
        "type": "T1",
        "scanned_at": 1700000000000 + local_id * 60000,
        "local_id": local_id,
    }
    payload.update(kwargs)
    return payload


def count(sqlite_client, auth_headers) -> int:
    return sqlite_client.get("/api/scans/count", headers=auth_headers).json()["total_on_server"]


def test_scenario_nominal(sqlite_client, auth_headers):
    previous = count(sqlite_client, auth_headers)

    response = sqlite_client.post(
        "/api/scans/bulk",
        json=[{"sample": "S1", "well_name": "W1", "block": "B1", "type": "T1",
               "scanned_at": 1700000000000, "local_id": 7}],
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["server_ids"]) == 1
    assert isinstance(body["server_ids"][0], int)
    assert body["total_on_server"] == previous + 1


def test_batch_vide_sans_changement(sqlite_client, auth_headers):
    previous = count(sqlite_client, auth_headers)

    response = sqlite_client.post("/api/scans/bulk", json=[], headers=auth_headers)

    assert response.status_code == 400
    assert "error" in response.json()
    assert count(sqlite_client, auth_headers) == previous


def test_batch_rejete_invisible(sqlite_client, auth_headers):
    scans = [make_scan_payload(1), make_scan_payload(2, block=""), make_scan_payload(3)]

    response = sqlite_client.post("/api/scans/bulk", json=scans, headers=auth_headers)

    assert response.status_code == 400
    listing = sqlite_client.get("/api/scans", headers=auth_headers).json()
    assert listing == {"data": [], "count": 0}


def test_ids_alignes_sur_le_batch(sqlite_client, auth_headers):
    scans = [make_scan_payload(i) for i in (4, 4, 1, 8, 2)]

    body = sqlite_client.post("/api/scans/bulk", json=scans, headers=auth_headers).json()

    assert len(body["server_ids"]) == len(scans)
    by_id = {row["id"]: row for row in sqlite_client.get("/api/scans", headers=auth_headers).json()["data"]}
    for scan, server_id in zip(scans, body["server_ids"]):
        assert by_id[server_id]["local_id"] == scan["local_id"]
        assert by_id[server_id]["sample"] == scan["sample"]


def test_lecture_idempotente(sqlite_client, auth_headers):
    sqlite_client.post("/api/scans/bulk", json=[make_scan_payload(1)], headers=auth_headers)

    assert count(sqlite_client, auth_headers) == count(sqlite_client, auth_headers)


def test_releve_de_test_invisible_mais_stocke(sqlite_client, auth_headers, session_factory):
    sqlite_client.post(
        "/api/scans/bulk",
        json=[make_scan_payload(1), make_scan_payload(2, sample="TEST-SCAN", is_test=True)],
        headers=auth_headers,
    )

    assert count(sqlite_client, auth_headers) == 1
    listing = sqlite_client.get("/api/scans", headers=auth_headers).json()
    assert [row["sample"] for row in listing["data"]] == ["S1"]
    csv_text = sqlite_client.get("/api/scans/export/csv", headers=auth_headers).text
    assert "TEST-SCAN" not in csv_text

    db = session_factory()
    try:
        assert db.execute(select(func.count()).select_from(Sample)).scalar_one() == 2
    finally:
        db.close()


def test_liste_triee_par_date_decroissante(sqlite_client, auth_headers):
    sqlite_client.post(
        "/api/scans/bulk",
        json=[make_scan_payload(2), make_scan_payload(3), make_scan_payload(1)],
        headers=auth_headers,
    )

    listing = sqlite_client.get("/api/scans", headers=auth_headers).json()
    assert [row["local_id"] for row in listing["data"]] == [3, 2, 1]

    limited = sqlite_client.get("/api/scans", params={"limit": 2}, headers=auth_headers).json()
    assert limited["count"] == 2


def test_liste_filtree_par_appareil(sqlite_client, auth_headers):
    sqlite_client.post(
        "/api/scans/bulk",
        json=[make_scan_payload(1, device_id="tab-01"), make_scan_payload(2, device_id="tab-02")],
        headers=auth_headers,
    )

    listing = sqlite_client.get("/api/scans", params={"device_id": "tab-02"}, headers=auth_headers).json()
    assert listing["count"] == 1
    assert listing["data"][0]["device_id"] == "tab-02"


def test_export_csv_ordre_et_entete(sqlite_client, auth_headers):
    sqlite_client.post(
        "/api/scans/bulk",
        json=[make_scan_payload(1, scanned_by="Ivan"), make_scan_payload(2)],
        headers=auth_headers,
    )

    lines = sqlite_client.get("/api/scans/export/csv", headers=auth_headers).text.splitlines()

    assert lines[0] == "ID,Device,Sample,Well,Block,Type,Time (UTC),Operator"
    assert '"S2"' in lines[1] and '"unknown"' in lines[1]
    assert '"S1"' in lines[2] and '"Ivan"' in lines[2]
    assert '"2023-11-14T22:14:20.000Z"' in lines[2]
