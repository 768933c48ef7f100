"""Job state, polling and workflow orchestration."""
