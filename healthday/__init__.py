"""healthday: daily biometric telemetry ingestion and reconciliation."""

__version__ = "0.1.0"
