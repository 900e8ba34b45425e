"""Tasks vertical: task tracking with attachments and live updates.

- SQLAlchemy Task / AttachedDocument models
- TaskRepository: visibility, filters, sorting, pagination
- AttachmentManager over core.storage.FileStorage
- TaskBroadcaster over the core.realtime Channel
- TaskService orchestrating the above behind the access policy
- HTTP router (/api/tasks) and WebSocket router (/ws)
"""
