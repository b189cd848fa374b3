from typing import Dict

SUPPORTED_LANGUAGES = ("he", "en")

TRANSLATIONS: Dict[str, Dict[str, Dict[str, str]]] = {
    "he": {
        "challenge": {
            "completed": "האתגר הושלם",
            "time_left": "נותרו {days} ימים {hours} שעות",
            "none": "אין אתגר פעיל",
        },
        "rank": {
            "position": "מקום {rank}",
            "none": "אין דירוג עדיין",
        },
        "leaderboard": {
            "anonymous": "משתמש",
        },
        "reminder": {
            "title": "תזכורת לדיווח",
            "body": "הגיע הזמן לדווח",
            "body_named": "הגיע הזמן לדווח: {name}",
        },
        "errors": {
            "network": "אין חיבור לשרת כרגע. מציגים את הנתונים האחרונים שנטענו.",
        },
    },
    "en": {
        "challenge": {
            "completed": "Completed",
            "time_left": "{days}d {hours}h left",
            "none": "No active challenge",
        },
        "rank": {
            "position": "#{rank}",
            "none": "No rank yet",
        },
        "leaderboard": {
            "anonymous": "User",
        },
        "reminder": {
            "title": "Report reminder",
            "body": "Time to report",
            "body_named": "Time to report: {name}",
        },
        "errors": {
            "network": "Can't reach the server right now. Showing the last loaded data.",
        },
    },
}


def normalize_language(language: str) -> str:
    return "en" if language == "en" else "he"


def translate(language: str, key: str, **params) -> str:
    """Look up a dotted key (``"rank.none"``); unknown keys come back unchanged."""
    cur = TRANSLATIONS[normalize_language(language)]
    for part in str(key).split("."):
        cur = cur.get(part) if isinstance(cur, dict) else None
    if not isinstance(cur, str):
        return key
    return cur.format(**params) if params else cur
