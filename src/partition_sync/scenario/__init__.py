"""Case table, environment and scenario orchestration."""
