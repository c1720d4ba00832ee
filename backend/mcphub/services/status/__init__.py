from mcphub.services.status.reporter import RouterStatus, StatusReporter, success_rate

__all__ = ["RouterStatus", "StatusReporter", "success_rate"]
