"""Form-session constants shared across the SDK.

These values are referenced by the engine, the drivers, and the persistence
scheduler.  They mirror conventions of the form schema format (question type
names, answer statuses).

Several constants can be overridden via environment variables so that
deployments can tune network behaviour without code changes.
"""

import os

# Question types whose answer is a single gesture.  The wizard driver
# advances immediately after recording an answer for these.
AUTO_ADVANCE_TYPES: frozenset[str] = frozenset(
    {"single_choice", "rating", "linear_scale", "likert_scale"}
)

# Question types that need an explicit "continue" in the wizard driver.
MULTI_STEP_TYPES: frozenset[str] = frozenset(
    {"multiple_choice", "address", "ranking", "file_upload"}
)

# Legacy camelCase spellings accepted in form files, mapped to the
# canonical snake_case question types.
QUESTION_TYPE_ALIASES: dict[str, str] = {
    "text": "short_text",
    "shortText": "short_text",
    "singleChoice": "single_choice",
    "multipleChoice": "multiple_choice",
    "linearScale": "linear_scale",
    "likertScale": "likert_scale",
    "fileUpload": "file_upload",
}

# Submission statuses understood by the remote persistence endpoint.
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"

# Seconds between persistence-queue drains when the worker runs in a loop.
# Overridable via FORMFLOW_PERSIST_INTERVAL env var.
PERSIST_INTERVAL = float(os.getenv("FORMFLOW_PERSIST_INTERVAL", "0.5"))

# Request timeout (seconds) for the HTTP persistence transport and uploader.
# Overridable via FORMFLOW_HTTP_TIMEOUT env var.
HTTP_TIMEOUT = float(os.getenv("FORMFLOW_HTTP_TIMEOUT", "10"))

# File extensions accepted for file-upload questions.
# Overridable via FORMFLOW_UPLOAD_EXTENSIONS (comma-separated).
ALLOWED_UPLOAD_EXTENSIONS: frozenset[str] = frozenset(
    ext.strip().lower()
    for ext in os.getenv(
        "FORMFLOW_UPLOAD_EXTENSIONS", "jpg,jpeg,png,gif,pdf,doc,docx,txt"
    ).split(",")
    if ext.strip()
)
