"""Core constants: shared literal values for the HTTP and WebSocket surfaces."""

# Pagination defaults for list endpoints
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

# WebSocket notification event types (value of the "type" key)
WS_EVENT_TASK_ASSIGNED = "task-assigned"
WS_EVENT_TASK_COMPLETED = "task-completed"
WS_EVENT_USER_MENTIONED = "user-mentioned"

# WebSocket close code for policy violations (bad or missing token)
WS_POLICY_VIOLATION = 1008
