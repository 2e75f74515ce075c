"""
Keyword lists and user-facing bot messages (Hebrew)
"""

# =============================================================================
# COMMAND KEYWORDS
# =============================================================================
# Compared against the normalized message text

RESET_KEYWORD = "מחק"

EXPLICIT_SEARCH_MARKERS = [
    "חפש לי הצעות",
    "תמצא לי הצעות",
]

GREETING_KEYWORDS = [
    "היי",
    "הי",
    "שלום",
    "מה קורה",
    "אהלן",
    "hi",
    "hello",
]

# Single-letter Hebrew prefixes (to / in / the / and) glued to team names
HEBREW_PREFIXES = ["ל", "ב", "ה", "ו"]

# =============================================================================
# BOT MESSAGES
# =============================================================================

SEARCH_EXAMPLE = "תמצא לי הצעות לריאל מדריד נגד ליברפול"

GREETING_PRIMARY_LIST = [
    "היי! ⚽ אני העוזר של TicketAgent.\n"
    "אני סורק ספקים בארץ ובעולם ומוצא לך את ההצעות הכי טובות לכרטיסים.\n"
    f'נסו למשל: *"{SEARCH_EXAMPLE}"*',
    "שלום וברוכים הבאים ל-TicketAgent 🎟️\n"
    "כתבו לי איזה משחק מעניין אתכם ואני אמצא הצעות בזמן אמת.\n"
    f'לדוגמה: *"{SEARCH_EXAMPLE}"*',
    "אהלן! 🏟️ מחפשים כרטיסים למשחק בחו\"ל?\n"
    "פשוט כתבו את שתי הקבוצות ואני אבדוק מחירים.\n"
    f'למשל: *"{SEARCH_EXAMPLE}"*',
]

GREETING_SECONDARY = "שוב שלום 🙂 איזה משחק נחפש הפעם?"

UNCLEAR = (
    "אופס, לא ממש הבנתי למה הכוונה. 😅\n"
    'אפשר לחפש כרטיסים למשל ככה: *"חפש לי הצעות לריאל מדריד נגד סיטי"*'
)

RESET_DONE = "🗑️ הקאש אופס בהצלחה! השיחה הבאה תיחשב כשיחה חדשה."

ERROR = "❌ אופס, משהו השתבש בעיבוד ההודעה. נסה שוב בעוד רגע."


def search_success(team_a: str, team_b: str) -> str:
    """Confirmation sent when a full pair was identified"""
    return f"כבר בודק לך מחירים למשחק של {team_a} נגד {team_b} 🔎"


def search_single_team(team: str) -> str:
    """Acknowledgment when only one team is known"""
    return f"מעולה, {team} ⚽ נגד איזו קבוצה המשחק?"
