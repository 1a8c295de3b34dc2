"""Run-log health unit tests."""
from feedsync.job import health
from feedsync.store import repo
from feedsync.store.models import STATUS_ERROR, STATUS_RUNNING, STATUS_SUCCESS, SyncLogRow


def _log(status: str, items_found: int = 10, log_id: int = 1) -> SyncLogRow:
    return SyncLogRow(
        id=log_id,
        platform="awin-sync",
        status=status,
        items_found=items_found,
        items_added=items_found,
        error_message=None,
        http_status=None,
        duration_ms=1000,
        created_at="2026-01-01T00:00:00.000000+00:00",
        finished_at=None,
    )


def test_three_errors_is_failing():
    recent = [_log(STATUS_ERROR), _log(STATUS_ERROR), _log(STATUS_ERROR), _log(STATUS_SUCCESS)]
    assert health.determine_status(recent) == health.FAILING


def test_three_empty_runs_is_suspicious():
    recent = [_log(STATUS_SUCCESS, 0), _log(STATUS_SUCCESS, 0), _log(STATUS_ERROR, 0)]
    assert health.determine_status(recent) == health.SUSPICIOUS


def test_latest_success_is_healthy():
    recent = [_log(STATUS_SUCCESS), _log(STATUS_ERROR), _log(STATUS_ERROR)]
    assert health.determine_status(recent) == health.HEALTHY


def test_running_rows_are_ignored():
    recent = [_log(STATUS_RUNNING, 0), _log(STATUS_SUCCESS)]
    assert health.determine_status(recent) == health.HEALTHY
    assert health.determine_status([_log(STATUS_RUNNING)]) == health.UNKNOWN
    assert health.determine_status([]) == health.UNKNOWN


def test_latest_error_without_streak_is_unknown():
    assert health.determine_status([_log(STATUS_ERROR), _log(STATUS_SUCCESS)]) == health.UNKNOWN


def test_platform_health_from_store(conn):
    repo.insert_run_log(conn, "awin-sync", status=STATUS_ERROR, items_found=0, duration_ms=500)
    repo.insert_run_log(conn, "awin-sync", status=STATUS_SUCCESS, items_found=120, items_added=100, duration_ms=1500)
    repo.insert_run_log(conn, "awin-sync-fnac", status=STATUS_ERROR, duration_ms=10)

    h = health.platform_health(conn, "awin-sync")
    assert h.status == health.HEALTHY
    assert h.runs_considered == 2
    assert h.success_rate == 50
    assert h.avg_duration_ms == 1000
    assert h.total_items_found == 120
    assert h.last_run.items_added == 100


def test_fail_stuck_runs(conn):
    stuck_id = repo.insert_run_log(conn, "awin-sync", status=STATUS_RUNNING)
    fresh_id = repo.insert_run_log(conn, "awin-sync-fnac", status=STATUS_RUNNING)
    conn.execute("UPDATE sync_logs SET created_at = ? WHERE id = ?", ("2000-01-01T00:00:00.000000+00:00", stuck_id))
    conn.commit()

    assert [r.id for r in health.find_stuck_runs(conn, 60)] == [stuck_id]
    assert health.fail_stuck_runs(conn, 60) == 1
    assert repo.get_run_log(conn, stuck_id).status == STATUS_ERROR
    assert repo.get_run_log(conn, stuck_id).finished_at is not None
    assert repo.get_run_log(conn, fresh_id).status == STATUS_RUNNING
    assert health.fail_stuck_runs(conn, 60) == 0
