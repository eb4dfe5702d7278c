"""JSON schemas for structured model output."""

from .models import VisaStatus

_STRING = {"type": "string"}
_NUMBER = {"type": "number"}
_BOOLEAN = {"type": "boolean"}
_NULLABLE_STRING = {"type": ["string", "null"]}

SOURCE_SCHEMA = {
    "type": "object",
    "properties": {"title": _STRING, "uri": _STRING},
}

VISA_POLICY_SCHEMA = {
    "type": "object",
    "properties": {
        "visaStatus": {"type": "string", "enum": [s.value for s in VisaStatus]},
        "summary": _STRING,
        "whatsNext": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"title": _STRING, "description": _STRING},
            },
        },
        "timeline": _STRING,
        "requirements": {"type": "array", "items": _STRING},
        "sources": {"type": "array", "items": SOURCE_SCHEMA},
    },
}

EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "score": _NUMBER,
        "pass": _BOOLEAN,
        "reasoning": _STRING,
    },
    "required": ["score", "pass", "reasoning"],
}

PURPOSES_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {"id": _STRING, "label": _STRING, "description": _STRING},
        "required": ["id", "label"],
    },
}

SAFETY_TIPS_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {"category": _STRING, "tip": _STRING},
        "required": ["category", "tip"],
    },
}

CHECKLIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": _STRING,
            "name": _STRING,
            "description": _STRING,
            "isRequired": _BOOLEAN,
        },
        "required": ["id", "name", "description", "isRequired"],
    },
}

PASSPORT_SCHEMA = {
    "type": "object",
    "properties": {
        "fullName": _NULLABLE_STRING,
        "passportNumber": _NULLABLE_STRING,
        "citizenship": _NULLABLE_STRING,
        "dateOfBirth": _NULLABLE_STRING,
        "passportExpiry": _NULLABLE_STRING,
    },
}
