def record(client, auth, subject_id, score, name="Quiz"):
    return client.post(
        "/api/tests",
        json={"name": name, "subject_id": subject_id, "score": score, "total_marks": 100, "marks_scored": score},
        headers=auth,
    )


def test_create_test_updates_expected_marks(client, auth, make_subject):
    subject = make_subject("Algorithms", 15)
    assert record(client, auth, subject["id"], 72.4).status_code == 201
    assert record(client, auth, subject["id"], 80).status_code == 201
    data = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()
    assert data["expected_marks"] == 11
    # round(76.2 * 0.2) on top of an empty syllabus
    assert data["overall_progress"] == 15


def test_marks_scored_cannot_exceed_total(client, auth, make_subject):
    subject = make_subject()
    resp = client.post(
        "/api/tests",
        json={"name": "Quiz", "subject_id": subject["id"], "score": 50, "total_marks": 10, "marks_scored": 12},
        headers=auth,
    )
    assert resp.status_code == 422


def test_list_requires_subject_id(client, auth, make_subject):
    subject = make_subject()
    record(client, auth, subject["id"], 60, "First")
    record(client, auth, subject["id"], 70, "Second")
    assert client.get("/api/tests", headers=auth).status_code == 400
    rows = client.get(f"/api/tests?subject_id={subject['id']}", headers=auth).json()
    assert [r["name"] for r in rows] == ["Second", "First"]


def test_subject_tests_statistics(client, auth, make_subject):
    subject = make_subject("Algorithms", 10)
    record(client, auth, subject["id"], 60)
    record(client, auth, subject["id"], 90)
    data = client.get(f"/api/subjects/{subject['id']}/tests", headers=auth).json()
    assert data["statistics"]["total_tests"] == 2
    assert data["statistics"]["average_score"] == 75
    assert data["expected_marks"] == 8


def test_delete_test_resets_expected_marks(client, auth, make_subject):
    subject = make_subject("Algorithms", 10)
    test_id = record(client, auth, subject["id"], 90).json()["id"]
    assert client.delete(f"/api/tests/{test_id}", headers=auth).status_code == 204
    assert client.get(f"/api/subjects/{subject['id']}", headers=auth).json()["expected_marks"] == 0


def test_foreign_test_not_found(client, auth, other_auth, make_subject):
    subject = make_subject()
    test_id = record(client, auth, subject["id"], 90).json()["id"]
    assert client.delete(f"/api/tests/{test_id}", headers=other_auth).status_code == 404
    assert record(client, other_auth, subject["id"], 90).status_code == 404


def test_mock_test_crud(client, auth, make_subject):
    subject = make_subject()
    created = client.post(
        "/api/mock-tests",
        json={"name": "Mock 1", "subject_id": subject["id"], "date": "2024-05-01", "expected_marks": 10},
        headers=auth,
    )
    assert created.status_code == 201
    mock_id = created.json()["id"]
    updated = client.patch(f"/api/mock-tests/{mock_id}", json={"actual_marks": 12}, headers=auth).json()
    assert updated["actual_marks"] == 12
    listing = client.get("/api/mock-tests", headers=auth).json()
    assert listing["summary"]["difference"] == 2
    assert client.delete(f"/api/mock-tests/{mock_id}", headers=auth).status_code == 204
    assert client.get("/api/mock-tests", headers=auth).json()["mock_tests"] == []
