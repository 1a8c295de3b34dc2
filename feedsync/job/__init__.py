"""Sync job: parameters, writer and orchestration. Entry point: feedsync.job.runner.run_sync."""
