"""Document store collection names (schema-in-code).

Firestore has no DDL or migrations; collections are created on first
write. These constants are the single source of truth for the layout
(see app.infrastructure.firebase.documents for the document shapes).

Example:
    db = request.app.state.document_client
    await db.collection(COLLECTION_TASKS).document(task_id).get()
"""

COLLECTION_TASKS = "tasks"
COLLECTION_WORKFLOWS = "workflows"
COLLECTION_TASK_MODELS = "task_models"
COLLECTION_CLIENTS = "clients"
COLLECTION_USERS = "users"
