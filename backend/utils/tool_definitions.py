from utils.constant import TOPIC_FIELD_KEYS

START_TOPIC = "start_topic"
ASK_FOLLOWUP = "ask_followup"
COMPLETE_TOPIC = "complete_topic"
END_SESSION = "end_session"

_TOPIC_PROPERTIES = {
    "field_key": {
        "type": "string",
        "enum": TOPIC_FIELD_KEYS,
        "description": "Passport field key for the topic",
    },
    "field_name": {
        "type": "string",
        "description": "Georgian display name of the field",
    },
    "field_icon": {
        "type": "string",
        "description": "Single emoji shown next to the field",
    },
    "question": {
        "type": "string",
        "description": "First question for this topic, in Georgian, starting with '🤖 Cofounder\\n'",
    },
}

TOOL_DEFINITIONS = [
    {
        "type": "function",
        "function": {
            "name": START_TOPIC,
            "description": "Start a new topic. Creates a passport field and asks its first question.",
            "parameters": {
                "type": "object",
                "properties": _TOPIC_PROPERTIES,
                "required": ["field_key", "field_name", "field_icon", "question"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ASK_FOLLOWUP,
            "description": "Ask a follow-up question about the CURRENT topic. Only valid after start_topic.",
            "parameters": {
                "type": "object",
                "properties": {
                    "question": {"type": "string", "description": "Follow-up question in Georgian"},
                    "reason": {"type": "string", "description": "Internal reason for asking"},
                },
                "required": ["question"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": COMPLETE_TOPIC,
            "description": (
                "Save a grammar-corrected summary to the current field and optionally start the next topic."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Summary of the user's answers for this field"},
                    "next_topic": {
                        "type": "object",
                        "description": "Next topic to start right away",
                        "properties": _TOPIC_PROPERTIES,
                        "required": ["field_key", "field_name", "field_icon", "question"],
                    },
                },
                "required": ["content"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": END_SESSION,
            "description": "Finish the conversation and show the results.",
            "parameters": {
                "type": "object",
                "properties": {
                    "message": {"type": "string", "description": "Closing message in Georgian"},
                    "assessment": {"type": "string", "description": "Overall assessment of the idea"},
                    "score": {"type": "integer", "minimum": 1, "maximum": 10, "description": "Readiness score"},
                },
                "required": ["message", "assessment", "score"],
            },
        },
    },
]
