from freezegun import freeze_time


def snapshot_payload():
    return {
        "clients": [
            {"id": "c1", "code": "ACME", "name": "Acme Power"},
            {"id": "c2", "code": "GLOBEX", "name": "Globex Water"},
        ],
        "users": [
            {"id": "u1", "name": "alice", "is_active": True},
            {"id": "u2", "name": "bruno", "is_active": True},
        ],
        "projects": [
            {
                "id": "p1",
                "client_id": "c1",
                "code": "ACME-001-24",
                "name": "Substation layout",
                "status": "in_progress",
                "assignee_id": "u1",
                "start_date": "2024-01-01",
                "end_date": "2024-01-10",
                "subtasks": [
                    {
                        "id": "s1",
                        "name": "Survey",
                        "status": "queued",
                        "assignee_id": "u2",
                        "start_date": "2024-01-08",
                        "end_date": "2024-01-09",
                    }
                ],
            },
            {
                "id": "p2",
                "client_id": "c2",
                "code": "GLOBEX-002-24",
                "name": "Pump station retrofit",
                "status": "queued",
                "assignee_id": "u1",
                "start_date": "2024-01-05",
                "end_date": "2024-01-15",
            },
        ],
    }


def store(client, payload=None):
    response = client.put("/api/v1/snapshot", json=payload or snapshot_payload())
    assert response.status_code == 200
    return response.json()


class TestSnapshotEndpoint:
    """Integration tests for /snapshot upserts."""

    def test_put_snapshot_returns_counts(self, client):
        assert store(client) == {"projects": 2, "users": 2, "clients": 2}

    def test_last_write_wins(self, client):
        store(client)
        payload = snapshot_payload()
        payload["projects"][0]["end_date"] = "2024-01-12"
        payload["projects"][0]["subtasks"] = []
        store(client, payload)

        response = client.get("/api/v1/projects/p1/working-days")
        assert response.json()["working_days"] == 10

        view = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        names = [r["name"] for r in view["rows"]]
        assert names == ["alice"]

    def test_subtask_moves_between_projects(self, client):
        """Re-parenting a stored subtask updates its row instead of inserting a duplicate."""
        store(client)
        payload = snapshot_payload()
        moved = payload["projects"][0].pop("subtasks")
        payload["projects"][1]["subtasks"] = moved
        payload["projects"] = [payload["projects"][1]]
        store(client, payload)

        view = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        bruno = next(r for r in view["rows"] if r["name"] == "bruno")
        assert [(p["assignment_id"], p["root_id"]) for p in bruno["placements"]] == [("s1", "p2")]

    def test_subtask_moves_while_old_parent_is_resent(self, client):
        store(client)
        payload = snapshot_payload()
        p1, p2 = payload["projects"]
        p2["subtasks"] = p1.pop("subtasks")
        payload["projects"] = [p2, p1]
        store(client, payload)

        view = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        bruno = next(r for r in view["rows"] if r["name"] == "bruno")
        assert [(p["assignment_id"], p["root_id"]) for p in bruno["placements"]] == [("s1", "p2")]

    def test_rows_follow_snapshot_user_order(self, client):
        payload = snapshot_payload()
        payload["users"].reverse()
        store(client, payload)

        view = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        assert [r["name"] for r in view["rows"]] == ["bruno", "alice"]

    def test_blank_dates_are_missing(self, client):
        payload = snapshot_payload()
        payload["projects"][1]["start_date"] = ""
        payload["projects"][1]["assignee_id"] = ""
        store(client, payload)

        view = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        alice = next(r for r in view["rows"] if r["name"] == "alice")
        assert [p["assignment_id"] for p in alice["placements"]] == ["p1"]

    def test_inverted_dates_rejected(self, client):
        payload = snapshot_payload()
        payload["projects"][0]["start_date"] = "2024-02-01"
        response = client.put("/api/v1/snapshot", json=payload)
        assert response.status_code == 422

    def test_unknown_status_rejected(self, client):
        payload = snapshot_payload()
        payload["projects"][0]["status"] = "archived"
        response = client.put("/api/v1/snapshot", json=payload)
        assert response.status_code == 422

    def test_duplicate_ids_rejected(self, client):
        payload = snapshot_payload()
        payload["projects"][1]["id"] = "p1"
        response = client.put("/api/v1/snapshot", json=payload)
        assert response.status_code == 422


class TestProjectEndpoints:

    def test_working_days(self, client):
        store(client)
        response = client.get("/api/v1/projects/p1/working-days")
        assert response.status_code == 200
        assert response.json() == {"project_id": "p1", "working_days": 8}

    def test_unknown_project_404(self, client):
        response = client.get("/api/v1/projects/missing/working-days")
        assert response.status_code == 404


class TestScheduleEndpoints:
    """Integration tests for timeline and schedule view."""

    def test_timeline_empty_store(self, client):
        response = client.get("/api/v1/schedule/timeline?today=2024-06-15")
        assert response.status_code == 200
        data = response.json()
        assert data["start"] == "2024-06-10"
        assert data["end"] == "2024-06-20"
        assert len(data["dates"]) == 11

    def test_timeline_covers_projects(self, client):
        store(client)
        data = client.get("/api/v1/schedule/timeline?today=2024-01-10").json()
        assert data["start"] == "2023-12-27"
        assert data["end"] == "2024-01-20"

    def test_schedule_view(self, client):
        store(client)
        response = client.get("/api/v1/schedule/view?today=2024-01-10")
        assert response.status_code == 200
        data = response.json()

        assert data["cached"] is False
        assert data["conflict_count"] == 1
        rows = {r["name"]: r for r in data["rows"]}
        alice = rows["alice"]
        assert alice["lane_count"] == 2
        assert {p["assignment_id"]: p["lane"] for p in alice["placements"]} == {"p1": 0, "p2": 1}
        assert alice["has_conflict"] is True
        assert alice["conflict_dates"][0] == "2024-01-05"
        assert alice["conflict_dates"][-1] == "2024-01-10"
        assert alice["conflicting"] == {"p1": ["p2"], "p2": ["p1"]}

        bruno = rows["bruno"]
        assert bruno["has_conflict"] is False
        assert bruno["placements"][0]["is_subtask"] is True
        assert bruno["placements"][0]["root_id"] == "p1"

    def test_schedule_view_is_cached(self, client, view_cache):
        store(client)
        first = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        second = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        assert second["cached"] is True
        assert second["rows"] == first["rows"]
        assert len(view_cache.store) == 1

    def test_changed_snapshot_misses_cache(self, client):
        store(client)
        client.get("/api/v1/schedule/view?today=2024-01-10")
        payload = snapshot_payload()
        payload["projects"][1]["status"] = "done"
        store(client, payload)

        data = client.get("/api/v1/schedule/view?today=2024-01-10").json()
        assert data["cached"] is False
        assert data["conflict_count"] == 0


class TestCapacityEndpoint:
    """Integration tests for /capacity."""

    def test_capacity_week_zero(self, client):
        store(client)
        response = client.get("/api/v1/capacity?week_offset=0&today=2024-01-10")
        assert response.status_code == 200
        data = response.json()
        assert data["week_start"] == "2024-01-08"
        assert data["week_end"] == "2024-01-12"
        assert data["week_range_label"] == "08/01 - 12/01"
        # alice: p1 3 days + p2 5 days; bruno: s1 2 days
        assert data["occupied_days"] == 10
        assert data["total_available_days"] == 10
        assert data["percentage"] == 100
        per_user = {u["name"]: u for u in data["per_user"]}
        assert per_user["alice"]["percentage"] == 160
        assert per_user["bruno"]["occupied_days"] == 2

    def test_out_of_range_offset_rejected(self, client):
        response = client.get("/api/v1/capacity?week_offset=5")
        assert response.status_code == 422

    def test_capacity_cached(self, client):
        store(client)
        client.get("/api/v1/capacity?week_offset=1&today=2024-01-10")
        data = client.get("/api/v1/capacity?week_offset=1&today=2024-01-10").json()
        assert data["cached"] is True
        assert data["week_start"] == "2024-01-15"

    def test_defaults_to_current_date(self, client):
        with freeze_time("2024-01-13 10:00:00"):
            data = client.get("/api/v1/capacity").json()
        assert data["week_start"] == "2024-01-15"
        assert data["per_user"] == []


class TestDashboardEndpoint:

    def test_dashboard(self, client):
        store(client)
        response = client.get("/api/v1/dashboard?today=2024-01-10")
        assert response.status_code == 200
        data = response.json()
        assert data["active_count"] == 2
        assert data["overdue_count"] == 1
        assert data["health"] == 50
        assert [p["id"] for p in data["upcoming"]] == ["p2"]
        assert data["conflict_count"] == 1
        assert data["capacity"]["percentage"] == 100
        assert data["top_clients"][0] == {"name": "Acme Power", "count": 1}


class TestHealthCheck:

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "app" in data
