from mcphub.services.queue.service import EventQueueService

__all__ = ["EventQueueService"]
