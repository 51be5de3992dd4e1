NODAL = {"actor_role": "NODAL_OFFICER", "actor_user_id": "nodal-mh"}
STATE = {"actor_role": "STATE_APPROVER", "actor_user_id": "state-mh"}
REVIEWER = {"actor_role": "MOSPI_REVIEWER", "actor_user_id": "mospi-reviewer"}
APPROVER = {"actor_role": "MOSPI_APPROVER", "actor_user_id": "mospi-approver"}


def _create(client):
    response = client.post("/submissions", json={**NODAL, "state_ut": "MH"})
    assert response.status_code == 201
    return response.json()["submission"]


def _act(client, submission_id, action, actor, **extra):
    return client.post(f"/submissions/{submission_id}/actions/{action}", json={**actor, **extra})


def test_end_to_end_approval(client):
    sub = _create(client)
    assert sub["status"] == "DRAFT"
    assert sub["available_actions"] == ["submit_to_state", "add_comment"]
    assert sub["progress"] == 25

    response = _act(client, sub["id"], "submit_to_state", NODAL)
    assert response.status_code == 200
    body = response.json()
    assert body["submission"]["status"] == "SUBMITTED_TO_STATE"
    assert body["submission"]["current_owner_role"] == "STATE_APPROVER"
    assert body["audit_entry"]["action"] == "submit_to_state"

    assert _act(client, sub["id"], "forward_to_mospi", STATE, comment="Data verified").status_code == 200
    assert _act(client, sub["id"], "add_comment", REVIEWER, comment="Indicator 2.3 looks high").status_code == 200
    assert _act(client, sub["id"], "forward_to_mospi", REVIEWER).status_code == 200
    response = _act(client, sub["id"], "approve", APPROVER, comment="Approved for scoring")
    assert response.status_code == 200
    final = response.json()["submission"]
    assert final["status"] == "MOSPI_APPROVED"
    assert final["progress"] == 100
    assert final["available_actions"] == []
    assert final["status_info"]["label"] == "Approved"

    timeline = client.get(f"/submissions/{sub['id']}/audit").json()["timeline"]
    assert [e["action"] for e in timeline] == [
        "create", "submit_to_state", "forward_to_mospi", "add_comment", "forward_to_mospi", "approve",
    ]


def test_comments_are_filtered_per_role(client):
    sub = _create(client)
    _act(client, sub["id"], "add_comment", NODAL, comment="Draft note for myself")
    _act(client, sub["id"], "submit_to_state", NODAL)
    _act(client, sub["id"], "forward_to_mospi", STATE, comment="Forwarded after checks")
    _act(client, sub["id"], "add_comment", REVIEWER, comment="MoSPI internal remark")

    def authors(role):
        comments = client.get(f"/submissions/{sub['id']}/comments", params={"role": role}).json()["comments"]
        return [c["author_role"] for c in comments]

    assert authors("NODAL_OFFICER") == ["NODAL_OFFICER"]
    assert authors("STATE_APPROVER") == ["NODAL_OFFICER", "STATE_APPROVER"]
    assert authors("MOSPI_APPROVER") == ["NODAL_OFFICER", "STATE_APPROVER", "MOSPI_REVIEWER"]

    detail = client.get(f"/submissions/{sub['id']}", params={"role": "NODAL_OFFICER"}).json()
    assert len(detail["review_comments"]) == 1


def test_rejection_then_final_rejection(client):
    sub = _create(client)
    _act(client, sub["id"], "submit_to_state", NODAL)

    response = _act(client, sub["id"], "state_reject", STATE, comment="Missing Annex 3")
    assert response.json()["submission"]["status"] == "REJECTED"
    assert response.json()["comment"]["type"] == "rejection"

    assert _act(client, sub["id"], "resubmit", NODAL, comment="Annex 3 attached").status_code == 200
    response = _act(client, sub["id"], "state_reject", STATE, comment="Annex 3 is unsigned")
    assert response.json()["submission"]["status"] == "REJECTED_FINAL"
    assert response.json()["submission"]["rejection_count"] == 2

    for role in ("NODAL_OFFICER", "STATE_APPROVER", "MOSPI_REVIEWER", "MOSPI_APPROVER", "ADMIN"):
        actions = client.get(f"/submissions/{sub['id']}/actions", params={"role": role}).json()["actions"]
        assert actions == []


def test_guard_failures_map_to_http_errors(client):
    sub = _create(client)

    response = _act(client, sub["id"], "approve", NODAL)
    assert response.status_code == 403
    assert response.json()["error"] == "UNAUTHORIZED_ACTOR"

    response = _act(client, sub["id"], "resubmit", NODAL)
    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_TRANSITION"

    _act(client, sub["id"], "submit_to_state", NODAL)
    response = _act(client, sub["id"], "state_reject", STATE, comment="")
    assert response.status_code == 422
    assert response.json()["error"] == "MISSING_REQUIRED_COMMENT"

    response = _act(client, sub["id"], "forward_to_mospi", STATE, comment="ok to forward", expected_version=1)
    assert response.status_code == 409
    assert response.json()["error"] == "CONCURRENT_MODIFICATION"

    current = client.get(f"/submissions/{sub['id']}", params={"role": "STATE_APPROVER"}).json()
    assert current["status"] == "SUBMITTED_TO_STATE"
    assert current["version"] == 2
    assert len(client.get(f"/submissions/{sub['id']}/audit").json()["timeline"]) == 2


def test_bad_input(client):
    sub = _create(client)

    assert _act(client, sub["id"], "teleport", NODAL).status_code == 400
    assert _act(client, sub["id"], "submit_to_state", {"actor_role": "KING", "actor_user_id": "x"}).status_code == 400
    assert _act(client, sub["id"], "submit_to_state", {"actor_role": "NODAL_OFFICER"}).status_code == 400
    assert client.get("/submissions/missing", params={"role": "NODAL_OFFICER"}).status_code == 404
    assert client.post("/submissions", json={**STATE, "state_ut": "MH"}).status_code == 403


def test_form_data_edit(client):
    sub = _create(client)

    response = client.put(
        f"/submissions/{sub['id']}/form-data",
        json={**NODAL, "form_data": {"Infrastructure_Enablers": [{"indicator_id": "4.1"}]}},
    )
    assert response.status_code == 200
    assert response.json()["audit_entry"]["details"]["changed_sections"] == ["Infrastructure_Enablers"]

    _act(client, sub["id"], "submit_to_state", NODAL)
    response = client.put(f"/submissions/{sub['id']}/form-data", json={**NODAL, "form_data": {}})
    assert response.status_code == 409


def test_dashboard_notifications_and_metrics(client):
    first = _create(client)
    _create(client)
    _act(client, first["id"], "submit_to_state", NODAL)

    dashboard = client.get("/dashboard", params={"role": "STATE_APPROVER"}).json()
    assert dashboard["total_submissions"] == 2
    assert dashboard["pending_for_role"] == 1

    inbox = client.get("/notifications", params={"role": "STATE_APPROVER"}).json()
    assert inbox["unread"] == 1
    note_id = inbox["items"][0]["id"]
    assert client.post(f"/notifications/{note_id}/read").status_code == 200
    assert client.get("/notifications", params={"role": "STATE_APPROVER"}).json()["unread"] == 0

    snapshot = client.get("/metrics").json()
    assert snapshot["counters"]["submissions_created"] == 2
    assert snapshot["by_action"] == {"submit_to_state": 1}

    activity = client.get("/audit/actors/nodal-mh").json()["entries"]
    assert [e["action"] for e in activity] == ["create", "create", "submit_to_state"]


def test_status_catalogue(client):
    statuses = {s["status"]: s for s in client.get("/workflow/statuses").json()}

    assert statuses["REJECTED_FINAL"]["terminal"]
    assert statuses["DRAFT"]["next_states"] == ["SUBMITTED_TO_STATE"]
    assert statuses["SUBMITTED_TO_MOSPI_APPROVER"]["progress"] == 90


def test_malformed_fields_are_bad_requests(client):
    sub = _create(client)

    response = _act(client, sub["id"], "add_comment", NODAL, comment=12345)
    assert response.status_code == 400
    assert response.json()["detail"] == "comment must be a string"

    assert _act(client, sub["id"], "submit_to_state", NODAL, expected_version="1").status_code == 400
    assert _act(client, sub["id"], "submit_to_state", NODAL, expected_version=True).status_code == 400
    assert client.post("/submissions", json={**NODAL, "state_ut": 7}).status_code == 400
    assert client.post("/submissions", json={**NODAL, "state_ut": "MH", "form_data": []}).status_code == 400

    current = client.get(f"/submissions/{sub['id']}", params={"role": "NODAL_OFFICER"}).json()
    assert current["status"] == "DRAFT"
    assert current["version"] == 1


def test_action_options_are_served_with_the_submission(client):
    sub = _create(client)
    _act(client, sub["id"], "submit_to_state", NODAL)
    _act(client, sub["id"], "state_reject", STATE, comment="Missing Annex 3")
    _act(client, sub["id"], "resubmit", NODAL)

    detail = client.get(f"/submissions/{sub['id']}", params={"role": "STATE_APPROVER"}).json()
    options = {o["action"]: o for o in detail["action_options"]}

    assert list(options) == detail["available_actions"]
    assert options["state_reject"]["escalates"]
    assert options["forward_to_mospi"]["comment_required"]
    assert not options["forward_to_mospi"]["escalates"]

    listed = client.get(f"/submissions/{sub['id']}/actions", params={"role": "STATE_APPROVER"}).json()
    assert listed["options"] == detail["action_options"]
