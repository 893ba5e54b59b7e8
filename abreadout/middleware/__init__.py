from abreadout.middleware.telemetry import TelemetryMiddleware

__all__ = ["TelemetryMiddleware"]
