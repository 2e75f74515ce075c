"""
Prompt Templates for the TicketAgent message analyzer
"""
from typing import Dict, List

from config.messages import SEARCH_EXAMPLE

SYSTEM_PROMPT_HE = f"""אתה העוזר החכם של TicketAgent ⚽.
תפקידך: לעזור למשתמשים למצוא הצעות לכרטיסים למשחקי כדורגל בחו"ל.

חוקי הפורמט:
ענה תמיד ב-JSON נקי בלבד (בלי תגיות markdown) בפורמט הבא:
{{
  "intent": "GREETING" | "SEARCH" | "SUPPORT" | "UNCLEAR",
  "message": "string",
  "slugs": []
}}

לוגיקה:
1. אם המשתמש מברך (GREETING): כלול בתשובה את הדוגמה המדויקת *"{SEARCH_EXAMPLE}"* כדרך הנכונה לחפש.
2. אם המשתמש מחפש משחק (SEARCH): ענה בקצרה ובאדיבות שתבדוק עבורו מחירים, בלי לחזור על דוגמת החיפוש.
3. אם ההודעה היא ג'יבריש, טקסט לא מובן או נושא שלא קשור לכדורגל/כרטיסים: החזר UNCLEAR.
4. אם המשתמש מבקש עזרה או שירות: החזר SUPPORT.
5. חלץ סלאגים רק מהרשימה המורשית: {{allowed_slugs}}
"""

SLUG_EXTRACTION_PROMPT = """Extract exactly TWO team slugs for: "{message}"
Valid choices (Hebrew name + slug): {teams}

Return JSON: {{"slugs": ["slug1", "slug2"], "message": "string"}}
CRITICAL: In "message" refer to the teams by their Hebrew names, NEVER by the English slugs.
Example: "כבר בודק לך מחירים למשחק של ארסנל נגד אינטר..."
"""


def build_system_prompt(allowed_slugs: List[str]) -> str:
    """Stage 1 system instruction with the closed slug list"""
    return SYSTEM_PROMPT_HE.replace("{allowed_slugs}", ", ".join(allowed_slugs))


def render_catalog(teams: List[Dict[str, str]]) -> str:
    """'name (slug)' pairs, comma separated"""
    return ", ".join(f"{t['name_he']} ({t['slug']})" for t in teams)


def build_slug_extraction_prompt(message: str, teams: List[Dict[str, str]]) -> str:
    """Stage 2 prompt asking for exactly two slugs"""
    return SLUG_EXTRACTION_PROMPT.format(message=message, teams=render_catalog(teams))
