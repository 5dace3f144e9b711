"""
tests/test_admin_routes.py -- Integration tests for RBAC and admin endpoints.

Coverage:
  - Guard ordering: no token -> 401, non-admin token -> 403, admin -> 200
  - Role changes: 404 for unknown ids, promotion visible on next login
  - Soft delete: login and refresh stop working, todos disappear, other
    users are untouched, audit history survives
  - Audit queries: action filter, newest first, metadata preserved, blank or
    unknown filters ignored
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.helpers import PASSWORD, auth_headers, login, make_admin, make_user

ADMIN_GETS = ("/admin/users", "/admin/audit-logs")


class TestGuardOrdering:
    @pytest.mark.parametrize("path", ADMIN_GETS)
    def test_no_token_is_401(self, api_client: TestClient, path: str) -> None:
        resp = api_client.get(path)
        assert resp.status_code == 401, f"Expected 401, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "unauthorized"

    @pytest.mark.parametrize("path", ADMIN_GETS)
    def test_malformed_header_is_401(self, api_client: TestClient, path: str) -> None:
        for header in ("Bearer", "Basic abc", "Bearer not-a-token"):
            resp = api_client.get(path, headers={"Authorization": header})
            assert resp.status_code == 401, f"{header!r}: expected 401, got {resp.status_code}"

    @pytest.mark.parametrize("path", ADMIN_GETS)
    def test_user_token_is_403(self, api_client: TestClient, path: str) -> None:
        session = make_user(api_client)
        resp = api_client.get(path, headers=auth_headers(session["accessToken"]))
        assert resp.status_code == 403, f"Expected 403, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "forbidden"

    @pytest.mark.parametrize("path", ADMIN_GETS)
    def test_admin_token_is_200(self, api_client: TestClient, path: str) -> None:
        admin = make_admin(api_client)
        resp = api_client.get(path, headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"

    def test_auth_is_checked_before_query_validation(self, api_client: TestClient) -> None:
        resp = api_client.get("/admin/users?limit=999")
        assert resp.status_code == 401

    def test_bad_pagination_is_400(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        for query in ("limit=0", "limit=51", "offset=-1", "limit=abc"):
            resp = api_client.get(f"/admin/users?{query}", headers=auth_headers(admin["accessToken"]))
            assert resp.status_code == 400, f"{query}: expected 400, got {resp.status_code}"


class TestUserManagement:
    def test_list_users_shape(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        resp = api_client.get("/admin/users?limit=50", headers=auth_headers(admin["accessToken"]))
        body = resp.json()
        assert body["page"]["limit"] == 50
        assert body["page"]["offset"] == 0
        assert body["page"]["total"] >= 1
        row = next(u for u in body["users"] if u["id"] == admin["user"]["id"])
        assert set(row) == {"id", "email", "role", "createdAt"}
        assert row["role"] == "admin"

    def test_promotion_takes_effect_on_next_login(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        target = make_user(api_client)

        resp = api_client.patch(
            f"/admin/users/{target['user']['id']}/role",
            json={"role": "admin"},
            headers=auth_headers(admin["accessToken"]),
        )
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        assert resp.json()["user"]["role"] == "admin"

        # The old access token still carries the old role snapshot.
        stale = api_client.get("/admin/users", headers=auth_headers(target["accessToken"]))
        assert stale.status_code == 403

        fresh = login(api_client, target["email"])
        assert fresh["user"]["role"] == "admin"
        ok = api_client.get("/admin/users", headers=auth_headers(fresh["accessToken"]))
        assert ok.status_code == 200

    def test_role_change_unknown_user_is_404(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        resp = api_client.patch(
            "/admin/users/00000000-0000-0000-0000-000000000000/role",
            json={"role": "admin"},
            headers=auth_headers(admin["accessToken"]),
        )
        assert resp.status_code == 404

    def test_invalid_role_is_400(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        target = make_user(api_client)
        resp = api_client.patch(
            f"/admin/users/{target['user']['id']}/role",
            json={"role": "superuser"},
            headers=auth_headers(admin["accessToken"]),
        )
        assert resp.status_code == 400


class TestSoftDelete:
    def test_delete_user_cascades(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        headers = auth_headers(admin["accessToken"])
        victim = make_user(api_client, "victim")
        bystander = make_user(api_client, "bystander")
        for title in ("one", "two"):
            api_client.post("/todos", json={"title": title}, headers=auth_headers(victim["accessToken"]))
        api_client.post("/todos", json={"title": "mine"}, headers=auth_headers(bystander["accessToken"]))

        resp = api_client.delete(f"/admin/users/{victim['user']['id']}", headers=headers)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["deleted"] == victim["user"]
        assert body["todosDeleted"] == 2
        assert body["sessionsRevoked"] == 1

        # Credentials and sessions are gone.
        relogin = api_client.post("/auth/login", json={"email": victim["email"], "password": PASSWORD})
        assert relogin.status_code == 401
        refresh = api_client.post("/auth/refresh", json={"refreshToken": victim["refreshToken"]})
        assert refresh.status_code == 401

        # The account is invisible to admins too.
        todos = api_client.get(f"/admin/users/{victim['user']['id']}/todos", headers=headers)
        assert todos.status_code == 404
        listed = api_client.get("/admin/users?limit=50", headers=headers).json()["users"]
        assert victim["user"]["id"] not in {u["id"] for u in listed}
        again = api_client.delete(f"/admin/users/{victim['user']['id']}", headers=headers)
        assert again.status_code == 404

        # Other users are unaffected.
        theirs = api_client.get("/todos", headers=auth_headers(bystander["accessToken"])).json()
        assert [t["title"] for t in theirs["todos"]] == ["mine"]
        assert api_client.post("/auth/refresh", json={"refreshToken": bystander["refreshToken"]}).status_code == 200

        # Audit history still names the deleted account.
        logs = api_client.get(
            f"/admin/audit-logs?actorUserId={victim['user']['id']}&limit=50",
            headers=headers,
        ).json()["logs"]
        assert any(log["action"] == "login-success" for log in logs)

    def test_email_can_be_reused_after_delete(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        victim = make_user(api_client)
        api_client.delete(f"/admin/users/{victim['user']['id']}", headers=auth_headers(admin["accessToken"]))
        resp = api_client.post("/auth/register", json={"email": victim["email"], "password": PASSWORD})
        assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
        assert resp.json()["user"]["id"] != victim["user"]["id"]

    def test_admin_views_user_todos_without_owner_id(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        owner = make_user(api_client)
        api_client.post("/todos", json={"title": "visible"}, headers=auth_headers(owner["accessToken"]))
        resp = api_client.get(
            f"/admin/users/{owner['user']['id']}/todos",
            headers=auth_headers(admin["accessToken"]),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["page"] == {"limit": 10, "offset": 0, "total": 1}
        assert "ownerUserId" not in body["todos"][0]


class TestAuditLogs:
    def test_login_failures_are_recorded_with_reason(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        target = make_user(api_client)
        api_client.post("/auth/login", json={"email": target["email"], "password": "wrong-password"})

        resp = api_client.get(
            "/admin/audit-logs?action=login-failure&limit=50",
            headers=auth_headers(admin["accessToken"]),
        )
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        logs = resp.json()["logs"]
        assert logs, "Expected at least one login-failure entry"
        assert all(log["action"] == "login-failure" for log in logs)
        newest = logs[0]
        assert newest["actorUserId"] == target["user"]["id"]
        assert newest["metadata"] == {"reason": "bad_password"}

    def test_unknown_email_failure_has_null_actor(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        api_client.post("/auth/login", json={"email": "  Ghost@Example.com ", "password": "whatever1"})
        logs = api_client.get(
            "/admin/audit-logs?action=login-failure&limit=50",
            headers=auth_headers(admin["accessToken"]),
        ).json()["logs"]
        ghost = next(log for log in logs if log["actorEmail"] == "ghost@example.com")
        assert ghost["actorUserId"] is None
        assert ghost["actorRole"] == "user"
        assert ghost["metadata"] == {"reason": "email_not_found"}

    def test_newest_first(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        headers = auth_headers(admin["accessToken"])
        logs = api_client.get("/admin/audit-logs?limit=50", headers=headers).json()["logs"]
        stamps = [log["createdAt"] for log in logs]
        assert stamps == sorted(stamps, reverse=True)

    def test_admin_actions_are_audited(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        headers = auth_headers(admin["accessToken"])
        api_client.get("/admin/users", headers=headers)
        logs = api_client.get(
            f"/admin/audit-logs?action=admin-list-users&actorUserId={admin['user']['id']}",
            headers=headers,
        ).json()["logs"]
        assert len(logs) == 1
        assert logs[0]["actorRole"] == "admin"
        assert logs[0]["metadata"] == {"limit": 10, "offset": 0}

    def test_unknown_action_filter_is_ignored(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        headers = auth_headers(admin["accessToken"])
        unfiltered = api_client.get("/admin/audit-logs?limit=50", headers=headers).json()
        resp = api_client.get("/admin/audit-logs?action=drop-tables&limit=50", headers=headers)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        assert resp.json()["page"]["total"] == unfiltered["page"]["total"]

    def test_filters_are_trimmed_and_blank_means_absent(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        headers = auth_headers(admin["accessToken"])
        uid = admin["user"]["id"]

        resp = api_client.get(
            f"/admin/audit-logs?action=%20login-success%20&actorUserId=%20{uid}%20",
            headers=headers,
        )
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        logs = resp.json()["logs"]
        assert len(logs) == 1
        assert logs[0]["action"] == "login-success"
        assert logs[0]["actorUserId"] == uid

        by_action = api_client.get("/admin/audit-logs?action=login-success", headers=headers).json()
        blank_actor = api_client.get("/admin/audit-logs?action=login-success&actorUserId=%20", headers=headers).json()
        assert blank_actor["page"]["total"] == by_action["page"]["total"]

    def test_audit_logs_are_read_only(self, api_client: TestClient) -> None:
        admin = make_admin(api_client)
        resp = api_client.delete("/admin/audit-logs", headers=auth_headers(admin["accessToken"]))
        assert resp.status_code == 405
