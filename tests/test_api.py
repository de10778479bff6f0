"""
End-to-end tests for the HTTP surface: staff management endpoints and the
public scan endpoints.
"""

import pytest

API = "/api/v1"


@pytest.fixture
def restaurant(client, staff_headers):
    res = client.post(f"{API}/restaurants/", json={"name": "Harbour Grill", "city": "Singapore"}, headers=staff_headers)
    assert res.status_code == 200
    return res.json()["data"]


@pytest.fixture
def questionnaire(client, staff_headers, questions):
    res = client.post(
        f"{API}/questionnaires/",
        json={"title": "Dinner survey", "questions": questions},
        headers=staff_headers,
    )
    assert res.status_code == 200
    return res.json()["data"]


def _create_table(client, headers, restaurant_id, number):
    res = client.post(f"{API}/tables/", json={"restaurantId": restaurant_id, "tableNumber": number}, headers=headers)
    assert res.status_code == 200
    return res.json()["data"]


class TestServiceEndpoints:

    def test_root(self, client):
        assert client.get("/").json()["service"] == "Echo Table API Server"

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestStaffAuth:

    def test_missing_token_rejected(self, client):
        assert client.get(f"{API}/restaurants/").status_code in (401, 403)

    def test_invalid_token_rejected(self, client):
        res = client.get(f"{API}/restaurants/", headers={"Authorization": "Bearer not-a-token"})
        assert res.status_code == 401

    def test_scan_is_public(self, client):
        res = client.get(f"{API}/scan/unknown-code")
        assert res.status_code == 404
        assert res.json()["error"]["code"] == "not_found"


class TestRestaurantEndpoints:

    def test_list_sorted_by_name(self, client, staff_headers):
        for name in ["Zest", "Amber"]:
            client.post(f"{API}/restaurants/", json={"name": name}, headers=staff_headers)

        names = [r["name"] for r in client.get(f"{API}/restaurants/", headers=staff_headers).json()["data"]["restaurants"]]
        assert names == ["Amber", "Zest"]

    def test_unknown_restaurant(self, client, staff_headers):
        assert client.get(f"{API}/restaurants/missing", headers=staff_headers).status_code == 404

    def test_delete(self, client, staff_headers, restaurant):
        assert client.delete(f"{API}/restaurants/{restaurant['id']}", headers=staff_headers).status_code == 200
        assert client.get(f"{API}/restaurants/{restaurant['id']}", headers=staff_headers).status_code == 404


class TestQuestionnaireEndpoints:

    def test_invalid_option_count(self, client, staff_headers):
        res = client.post(
            f"{API}/questionnaires/",
            json={
                "title": "Broken",
                "questions": [{
                    "id": "q1",
                    "text": "Pick one",
                    "type": "multiple_choice",
                    "options": [{"label": "Only", "value": "only"}],
                }],
            },
            headers=staff_headers,
        )
        assert res.status_code == 422
        body = res.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation_error"
        assert body["error"]["detail"]["field"] == "questions[0].options"

    def test_edit_bumps_version(self, client, staff_headers, questionnaire):
        res = client.put(
            f"{API}/questionnaires/{questionnaire['id']}",
            json={"questions": [{"id": "q2", "text": "Anything else?", "type": "text_input"}]},
            headers=staff_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["version"] == 2

    def test_title_edit_keeps_version(self, client, staff_headers, questionnaire):
        res = client.put(f"{API}/questionnaires/{questionnaire['id']}", json={"title": "Renamed"}, headers=staff_headers)
        assert res.json()["data"]["title"] == "Renamed"
        assert res.json()["data"]["version"] == 1


class TestAssignmentFlow:

    def test_table_creation_without_assignments(self, client, staff_headers, restaurant):
        table = _create_table(client, staff_headers, restaurant["id"], "1")

        assert table["propagatedAssignments"] == []
        assert table["resolvable"] is False
        res = client.get(f"{API}/scan/{table['scanCode']['id']}")
        assert res.status_code == 404
        assert res.json()["error"]["code"] == "no_active_questionnaire"

    def test_scan_and_submit(self, client, staff_headers, restaurant, questionnaire):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        scan_code_id = table["scanCode"]["id"]
        res = client.post(
            f"{API}/assignments/",
            json={"scanCodeId": scan_code_id, "questionnaireId": questionnaire["id"], "weight": 100},
            headers=staff_headers,
        )
        assert res.status_code == 200

        resolved = client.get(f"{API}/scan/{scan_code_id}").json()["data"]
        assert resolved["questionnaire"]["id"] == questionnaire["id"]
        assert resolved["tableId"] == table["id"]

        res = client.post(
            f"{API}/scan/{scan_code_id}/responses",
            json={
                "tableId": resolved["tableId"],
                "questionnaireId": resolved["questionnaire"]["id"],
                "assignmentId": resolved["assignmentId"],
                "answers": {"q1": "great", "q2": "Lovely"},
            },
        )
        assert res.status_code == 200
        record = res.json()["data"]
        assert record["assignmentId"] == resolved["assignmentId"]
        assert record["submittedAt"].endswith("+08:00")

        stats = client.get(f"{API}/restaurants/{restaurant['id']}/variant-stats", headers=staff_headers).json()["data"]
        assert stats["totalResponses"] == 1

    def test_unknown_answer_key_rejected(self, client, staff_headers, restaurant, questionnaire):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        scan_code_id = table["scanCode"]["id"]
        client.post(
            f"{API}/assignments/",
            json={"scanCodeId": scan_code_id, "questionnaireId": questionnaire["id"]},
            headers=staff_headers,
        )
        resolved = client.get(f"{API}/scan/{scan_code_id}").json()["data"]

        res = client.post(
            f"{API}/scan/{scan_code_id}/responses",
            json={
                "tableId": resolved["tableId"],
                "questionnaireId": resolved["questionnaire"]["id"],
                "assignmentId": resolved["assignmentId"],
                "answers": {"bogus": "x"},
            },
        )
        assert res.status_code == 422
        assert res.json()["error"]["detail"]["field"] == "answers.bogus"

    def test_second_manual_assignment_conflicts(self, client, staff_headers, restaurant, questionnaire, questions):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        other = client.post(
            f"{API}/questionnaires/", json={"title": "Other", "questions": questions}, headers=staff_headers
        ).json()["data"]
        payload = {"scanCodeId": table["scanCode"]["id"], "questionnaireId": questionnaire["id"]}
        client.post(f"{API}/assignments/", json=payload, headers=staff_headers)

        res = client.post(
            f"{API}/assignments/",
            json={**payload, "questionnaireId": other["id"]},
            headers=staff_headers,
        )
        assert res.status_code == 409
        assert res.json()["error"]["code"] == "conflict"

    def test_zero_weight_rejected(self, client, staff_headers, restaurant, questionnaire):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        res = client.post(
            f"{API}/assignments/",
            json={"scanCodeId": table["scanCode"]["id"], "questionnaireId": questionnaire["id"], "weight": 0},
            headers=staff_headers,
        )
        assert res.status_code == 422

    def test_restaurant_assignment_and_propagation(self, client, staff_headers, restaurant, questionnaire):
        _create_table(client, staff_headers, restaurant["id"], "1")
        _create_table(client, staff_headers, restaurant["id"], "2")

        res = client.post(
            f"{API}/questionnaires/{questionnaire['id']}/restaurant-assignments",
            json={"restaurantId": restaurant["id"], "weight": 40},
            headers=staff_headers,
        )
        assert res.json()["data"]["assignedCount"] == 2

        again = client.post(
            f"{API}/questionnaires/{questionnaire['id']}/restaurant-assignments",
            json={"restaurantId": restaurant["id"]},
            headers=staff_headers,
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "all_assigned"

        new_table = _create_table(client, staff_headers, restaurant["id"], "3")
        assert [a["weight"] for a in new_table["propagatedAssignments"]] == [40]
        assert new_table["resolvable"] is True

        overview = client.get(
            f"{API}/questionnaires/{questionnaire['id']}/assignments", headers=staff_headers
        ).json()["data"]
        assert [t["table_number"] for t in overview["restaurants"][0]["tables"]] == ["1", "2", "3"]

        removed = client.delete(
            f"{API}/questionnaires/{questionnaire['id']}/restaurant-assignments/{restaurant['id']}",
            headers=staff_headers,
        )
        assert removed.json()["data"]["removedCount"] == 3

    def test_deactivate_then_scan(self, client, staff_headers, restaurant, questionnaire):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        scan_code_id = table["scanCode"]["id"]
        assignment = client.post(
            f"{API}/assignments/",
            json={"scanCodeId": scan_code_id, "questionnaireId": questionnaire["id"]},
            headers=staff_headers,
        ).json()["data"]

        res = client.post(f"{API}/assignments/{assignment['id']}/deactivate", headers=staff_headers)
        assert res.status_code == 200

        listing = client.get(f"{API}/assignments/scan-code/{scan_code_id}", headers=staff_headers).json()["data"]
        assert listing["assignments"][0]["isActive"] is False
        assert listing["candidates"] == []
        assert client.get(f"{API}/scan/{scan_code_id}").status_code == 404

    def test_regenerate_invalidates_old_code(self, client, staff_headers, restaurant):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        old_code = table["scanCode"]["id"]

        res = client.post(f"{API}/tables/{table['id']}/scan-code/regenerate", headers=staff_headers)
        assert res.status_code == 200
        assert res.json()["data"]["scanCode"]["id"] != old_code

        tables = client.get(f"{API}/restaurants/{restaurant['id']}/tables", headers=staff_headers).json()["data"]["tables"]
        assert tables[0]["scanCode"]["id"] == res.json()["data"]["scanCode"]["id"]
        assert client.get(f"{API}/scan/{old_code}").json()["error"]["code"] == "not_found"


class TestTableResponses:

    def _assigned_table(self, client, staff_headers, restaurant, questionnaire):
        table = _create_table(client, staff_headers, restaurant["id"], "1")
        client.post(
            f"{API}/assignments/",
            json={"scanCodeId": table["scanCode"]["id"], "questionnaireId": questionnaire["id"]},
            headers=staff_headers,
        )
        return table

    def test_submission_keeps_version_seen_at_scan(self, client, staff_headers, restaurant, questionnaire):
        table = self._assigned_table(client, staff_headers, restaurant, questionnaire)
        scan_code_id = table["scanCode"]["id"]
        resolved = client.get(f"{API}/scan/{scan_code_id}").json()["data"]
        assert resolved["questionnaire"]["version"] == 1

        client.put(
            f"{API}/questionnaires/{questionnaire['id']}",
            json={"questions": [{"id": "q2", "text": "Anything else?", "type": "text_input"}]},
            headers=staff_headers,
        )
        res = client.post(
            f"{API}/scan/{scan_code_id}/responses",
            json={
                "tableId": resolved["tableId"],
                "questionnaireId": resolved["questionnaire"]["id"],
                "assignmentId": resolved["assignmentId"],
                "questionnaireVersion": resolved["questionnaire"]["version"],
                "answers": {"q1": "great", "q2": "fine"},
            },
        )

        assert res.status_code == 200
        assert res.json()["data"]["questionnaireVersion"] == 1
        assert res.json()["data"]["flaggedKeys"] == ["q1"]

    def test_lists_table_responses(self, client, staff_headers, restaurant, questionnaire):
        table = self._assigned_table(client, staff_headers, restaurant, questionnaire)
        scan_code_id = table["scanCode"]["id"]
        resolved = client.get(f"{API}/scan/{scan_code_id}").json()["data"]
        for answer in ["great", "bad"]:
            client.post(
                f"{API}/scan/{scan_code_id}/responses",
                json={
                    "tableId": resolved["tableId"],
                    "questionnaireId": resolved["questionnaire"]["id"],
                    "assignmentId": resolved["assignmentId"],
                    "answers": {"q1": answer},
                },
            )

        res = client.get(f"{API}/tables/{table['id']}/responses", headers=staff_headers)

        assert res.status_code == 200
        data = res.json()["data"]
        assert len(data) == 2
        assert {r["answers"]["q1"] for r in data} == {"great", "bad"}
        assert all(r["assignmentId"] == resolved["assignmentId"] for r in data)

    def test_limit_applied(self, client, staff_headers, restaurant, questionnaire):
        table = self._assigned_table(client, staff_headers, restaurant, questionnaire)
        scan_code_id = table["scanCode"]["id"]
        resolved = client.get(f"{API}/scan/{scan_code_id}").json()["data"]
        for _ in range(3):
            client.post(
                f"{API}/scan/{scan_code_id}/responses",
                json={
                    "tableId": resolved["tableId"],
                    "questionnaireId": resolved["questionnaire"]["id"],
                    "assignmentId": resolved["assignmentId"],
                    "answers": {"q1": "okay"},
                },
            )

        res = client.get(f"{API}/tables/{table['id']}/responses?limit=2", headers=staff_headers)
        assert len(res.json()["data"]) == 2

    def test_unknown_table(self, client, staff_headers):
        assert client.get(f"{API}/tables/missing/responses", headers=staff_headers).status_code == 404

    def test_requires_staff_token(self, client):
        assert client.get(f"{API}/tables/missing/responses").status_code in (401, 403)
