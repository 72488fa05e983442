from datetime import datetime

from examtrack.models import TopicProgress


def test_progress_rejects_unknown_type(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    resp = client.post(f"/api/topics/{subject['topic_ids'][0]}/progress", json={"type": "reading"}, headers=auth)
    assert resp.status_code == 400


def test_progress_logs_entry_and_bumps_counters(client, auth, make_subject, db):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    topic_id = subject["topic_ids"][0]
    for _ in range(4):
        resp = client.post(f"/api/topics/{topic_id}/progress", json={"type": "revision"}, headers=auth)
        assert resp.status_code == 200
    assert resp.json()["type"] == "revision"
    assert db.query(TopicProgress).filter(TopicProgress.topic_id == topic_id).count() == 4
    topic = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()["chapters"][0]["topics"][0]
    assert topic["revision_count"] == 3
    last = datetime.fromisoformat(topic["last_revised"])
    nxt = datetime.fromisoformat(topic["next_revision"])
    assert (nxt - last).days == 7


def test_learning_progress_rolls_up(client, auth, make_subject):
    subject = make_subject("Algorithms", 10, {"Sorting": ["Quicksort"]})
    client.post(f"/api/topics/{subject['topic_ids'][0]}/progress", json={"type": "learning"}, headers=auth)
    client.post(f"/api/topics/{subject['topic_ids'][0]}/progress", json={"type": "revision"}, headers=auth)
    data = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()
    assert data["learning_progress"] == 100
    assert data["revision_progress"] == 100
    assert data["overall_progress"] == 70
    assert data["foundation_level"] == "Advanced"
    assert data["completed_topics"] == 1


def test_status_requires_learning_first(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    topic_id = subject["topic_ids"][0]
    resp = client.post(
        f"/api/topics/{topic_id}/status",
        json={"type": "practice", "current_value": 0, "new_value": 1},
        headers=auth,
    )
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["error"] == "TOPIC_NOT_LEARNED"
    assert detail["names"]["chapter_name"] == "Sorting"


def test_status_toggles_learning_and_sets_counts(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    topic_id = subject["topic_ids"][0]
    learned = client.post(f"/api/topics/{topic_id}/status", json={"type": "learning"}, headers=auth).json()
    assert learned["topic"]["learning_status"] is True
    assert learned["completion_status"]["is_completed"] is True
    assert learned["completion_status"]["is_chapter_completed"] is True

    resp = client.post(
        f"/api/topics/{topic_id}/status",
        json={"type": "revision", "current_value": 0, "new_value": 3},
        headers=auth,
    ).json()
    assert resp["topic"]["revision_count"] == 3
    assert resp["topic"]["next_revision"] is not None
    assert resp["completion_status"]["is_topic_category_completed"] is True
    assert resp["completion_status"]["is_subject_completed"] is True

    unlearned = client.post(f"/api/topics/{topic_id}/status", json={"type": "learning"}, headers=auth).json()
    assert unlearned["topic"]["learning_status"] is False


def test_status_rejects_out_of_range_value(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    resp = client.post(
        f"/api/topics/{subject['topic_ids'][0]}/status",
        json={"type": "test", "new_value": 4},
        headers=auth,
    )
    assert resp.status_code == 422


def test_patch_topic_counters(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    topic_id = subject["topic_ids"][0]
    assert client.patch(f"/api/topics/{topic_id}", json={"practice_count": 5}, headers=auth).status_code == 422
    resp = client.patch(
        f"/api/topics/{topic_id}", json={"learning_status": True, "practice_count": 2, "name": " Heapsort "}, headers=auth
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Heapsort"
    data = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()
    assert data["practice_progress"] == 100


def test_delete_topic_updates_chapter(client, auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort", "Mergesort"]})
    first, second = subject["topic_ids"]
    client.post(f"/api/topics/{first}/progress", json={"type": "learning"}, headers=auth)
    assert client.delete(f"/api/topics/{second}", headers=auth).status_code == 204
    data = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()
    assert data["chapters"][0]["learning_progress"] == 100
    assert client.delete(f"/api/topics/{second}", headers=auth).status_code == 404


def test_foreign_topic_not_found(client, auth, other_auth, make_subject):
    subject = make_subject("Algorithms", 8, {"Sorting": ["Quicksort"]})
    resp = client.post(f"/api/topics/{subject['topic_ids'][0]}/progress", json={"type": "learning"}, headers=other_auth)
    assert resp.status_code == 404


def test_status_refreshes_rollups_without_completion_flags(client, auth, make_subject):
    subject = make_subject("Algorithms", 10, {"Sorting": ["Quicksort"]})
    topic_id = subject["topic_ids"][0]
    resp = client.post(
        f"/api/topics/{topic_id}/status", json={"type": "learning", "update_progress": False}, headers=auth
    )
    assert resp.status_code == 200
    assert resp.json()["completion_status"]["is_completed"] is False
    data = client.get(f"/api/subjects/{subject['id']}", headers=auth).json()
    assert data["learning_progress"] == 100
    assert data["chapters"][0]["learning_progress"] == 100
    assert data["overall_progress"] == 40
