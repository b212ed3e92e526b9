class GlobalMessages:
    # Auth Messages
    INVALID_CREDENTIALS = "Invalid credentials provided."
    AUTH_HEADER_MISSING = "Authorization header is missing."

    # Token Messages
    TOKEN_GENERATED = "Token generated successfully"
    TOKEN_CANCELLED = "Token cancelled"

    # Staff Messages
    PATIENT_CALLED = "Patient called"
    CONSULTATION_STARTED = "Consultation started"
    CONSULTATION_COMPLETED = "Consultation completed"
    CONSULTATION_CANCELLED = "Consultation cancelled"
    MARKED_NO_SHOW = "Marked as no-show"
    PATIENT_SKIPPED = "Patient skipped"
    PRIORITY_UPDATED = "Priority updated"

    # Generic
    SUCCESS = "Success"
    QUEUE_NOT_READY = "Queue engine is not ready yet."
