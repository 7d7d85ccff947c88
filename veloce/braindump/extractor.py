"""
Tool: Brain Dump Extractor
Purpose: Turn unstructured text into discrete, actionable tasks

The LLM reads the dump, pulls out tasks (with priority, category, time
estimate, due context and people mentioned) and notices the mood behind
it. Without an API key or SDK, a rule-based extractor does the same job
with keyword heuristics, so a dump never goes unprocessed.

Usage:
    python -m veloce.braindump.extractor --text "need to call mom, pay rent asap"
    python -m veloce.braindump.extractor --text "..." --no-llm

Dependencies:
    - anthropic (optional, for LLM extraction)
    - re (stdlib)

Output:
    JSON result with tasks, overall_mood, gentle_observation,
    detected_themes and source ("llm" or "rules")
"""

import argparse
import json
import os
import re
import sys
from typing import Any, Dict, List, Optional, Tuple

from veloce.config_models import load_config
from veloce.logging_config import get_logger
from veloce.tasks import CATEGORIES, TASK_TYPE_DEFAULT_MINUTES

from . import (
    ACTION_VERBS,
    CATEGORY_KEYWORDS,
    FAMILY_WORDS,
    LEAD_INS,
    LOW_PRIORITY_CUES,
    PRIORITIES,
    PROMPT_PATH,
    STRESS_WORDS,
    URGENCY_CUES,
    VERB_TASK_TYPES,
)

logger = get_logger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Minutes for a task whose verb says nothing about its type
DEFAULT_RULE_MINUTES = 20

SENTENCE_SPLIT = re.compile(r"[\n.;!?]+")
CLAUSE_SPLIT = re.compile(r"(,|\band\b)", re.IGNORECASE)
LEAD_IN_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(lead) for lead in sorted(LEAD_INS, key=len, reverse=True)) + r")\s+",
    re.IGNORECASE,
)
PERSON_PATTERN = re.compile(r"\b(?:call|email|text|message|ask|tell|meet|with|remind|visit)\s+([A-Z][a-z]+)")
WORD_PATTERN = re.compile(r"[a-z']+")


def load_extraction_prompt() -> str:
    """Load the extraction hardprompt."""
    if PROMPT_PATH.exists():
        with open(PROMPT_PATH) as f:
            return f.read()
    # Minimal prompt if the file is missing
    return """Extract actionable tasks from this brain dump.

Respond ONLY with JSON:
{"tasks": [{"title": "...", "estimatedMinutes": 30, "priority": "high|medium|low",
"category": "work|personal|health|finance|social|learning|other", "suggestion": null,
"relatedPerson": null, "dueContext": null}],
"overall_mood": "...", "gentle_observation": "...", "detected_themes": []}
"""


# =============================================================================
# Response parsing
# =============================================================================


def parse_response(response_text: str) -> Dict[str, Any]:
    """
    Parse an LLM response into a dict.

    Strips markdown fences and anything outside the outermost braces.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    cleaned = response_text.replace("```json", "").replace("```", "").strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        raise ValueError("No JSON object in response")

    return json.loads(cleaned[start:end + 1])


def _clean_optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() in ("null", "none", "n/a"):
        return None
    return value


def normalize_task(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map an extracted task (camelCase or snake_case) onto our fields."""
    title = _clean_optional(raw.get("title"))
    if not title:
        return None

    priority = str(raw.get("priority") or "medium").lower()
    if priority not in PRIORITIES:
        priority = "medium"

    category = str(raw.get("category") or "other").lower()
    if category not in CATEGORIES:
        category = "other"

    minutes = raw.get("estimatedMinutes", raw.get("estimated_minutes"))
    try:
        minutes = max(int(minutes), 1) if minutes is not None else None
    except (TypeError, ValueError):
        minutes = None

    return {
        "title": title,
        "estimated_minutes": minutes,
        "priority": priority,
        "category": category,
        "suggestion": _clean_optional(raw.get("suggestion")),
        "related_person": _clean_optional(raw.get("relatedPerson", raw.get("related_person"))),
        "due_context": _clean_optional(raw.get("dueContext", raw.get("due_context"))),
    }


def normalize_result(data: Dict[str, Any], max_tasks: int) -> Dict[str, Any]:
    """
    Validate and normalize a parsed extraction.

    Raises:
        ValueError: If the tasks field is missing or not a list
    """
    if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
        raise ValueError("Response missing 'tasks' list")

    tasks = [task for task in (normalize_task(raw) for raw in data["tasks"] if isinstance(raw, dict)) if task]

    themes = data.get("detected_themes") or []
    if not isinstance(themes, list):
        themes = []

    return {
        "tasks": tasks[:max_tasks],
        "overall_mood": _clean_optional(data.get("overall_mood")),
        "gentle_observation": _clean_optional(data.get("gentle_observation")),
        "detected_themes": [str(theme) for theme in themes],
    }


# =============================================================================
# LLM extraction
# =============================================================================


def response_text(message: Any) -> str:
    """Joined text of a reply's text blocks. Tool-use and other blocks are skipped."""
    parts = []
    for block in getattr(message, "content", None) or []:
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
    return "".join(parts).strip()


def extract_with_llm(text: str) -> Dict[str, Any]:
    """
    Use the LLM to extract tasks.

    Args:
        text: The brain dump

    Returns:
        dict with normalized extraction, or an error
    """
    try:
        import anthropic
    except ImportError:
        return {
            "success": False,
            "error": "anthropic package not installed. Run: pip install anthropic",
        }

    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        return {"success": False, "error": "ANTHROPIC_API_KEY not set"}

    config = load_config().braindump
    prompt = load_extraction_prompt()

    client = anthropic.Anthropic(api_key=api_key)

    try:
        message = client.messages.create(
            model=config.llm_model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            messages=[
                {
                    "role": "user",
                    "content": f"{prompt}\n\nINPUT:\n{text}\n\nRespond with valid JSON only.",
                }
            ],
        )
    except anthropic.APIError as e:
        return {"success": False, "error": f"LLM extraction failed: {e}"}

    reply = response_text(message)
    if not reply:
        return {"success": False, "error": "AI response contained no text"}

    try:
        data = parse_response(reply)
        return {"success": True, "data": normalize_result(data, config.max_tasks)}
    except ValueError as e:
        return {"success": False, "error": f"Could not understand AI response: {e}"}


# =============================================================================
# Rule-based extraction
# =============================================================================


def strip_lead_in(fragment: str) -> Tuple[str, bool]:
    """Drop everything up to a lead-in like "need to". Returns (body, had_lead_in)."""
    fragment = fragment.strip().lstrip("-*•[] ").strip()
    match = LEAD_IN_PATTERN.search(fragment)
    if match:
        return fragment[match.end():].strip(), True
    return fragment, False


def is_actionable(fragment: str) -> bool:
    body, had_lead_in = strip_lead_in(fragment)
    if not body:
        return False
    words = WORD_PATTERN.findall(body.lower())
    return had_lead_in or (bool(words) and words[0] in ACTION_VERBS)


def split_fragments(text: str) -> List[str]:
    """
    Split a dump into candidate task fragments.

    Sentences split on punctuation and newlines; clauses on commas and
    "and", except that "and" followed by a non-action is kept together
    ("buy salt and pepper").
    """
    fragments = []
    for sentence in SENTENCE_SPLIT.split(text):
        parts = CLAUSE_SPLIT.split(sentence)
        current = parts[0]
        for separator, part in zip(parts[1::2], parts[2::2]):
            if separator.lower() == "and" and not is_actionable(part):
                current = f"{current.rstrip()} and {part.strip()}"
            else:
                fragments.append(current)
                current = part
        fragments.append(current)

    return [fragment.strip() for fragment in fragments if fragment and fragment.strip()]


def _contains(text: str, cue: str) -> bool:
    return re.search(rf"\b{re.escape(cue)}\b", text) is not None


def detect_priority(fragment: str) -> str:
    lower = fragment.lower()
    if any(_contains(lower, cue) for cue in URGENCY_CUES):
        return "high"
    if any(_contains(lower, cue) for cue in LOW_PRIORITY_CUES):
        return "low"
    return "medium"


def detect_category(fragment: str) -> str:
    words = set(WORD_PATTERN.findall(fragment.lower()))
    for category, keywords in CATEGORY_KEYWORDS.items():
        if words.intersection(keywords):
            return category
    return "other"


def detect_due_context(fragment: str) -> Optional[str]:
    lower = fragment.lower()
    for cue in ("today", "tomorrow"):
        if _contains(lower, cue):
            return cue
    for weekday in WEEKDAYS:
        if _contains(lower, weekday):
            return weekday.capitalize()
    for cue in ("this week", "next week", "soon"):
        if _contains(lower, cue):
            return cue
    return None


def detect_person(fragment: str) -> Optional[str]:
    match = PERSON_PATTERN.search(fragment)
    if match and match.group(1).lower() not in WEEKDAYS:
        return match.group(1)
    for word in WORD_PATTERN.findall(fragment.lower()):
        if word in FAMILY_WORDS:
            return word.capitalize()
    return None


def estimate_minutes(body: str) -> int:
    """Estimate from the leading verb's task type, padded by the configured buffer."""
    words = WORD_PATTERN.findall(body.lower())
    task_type = VERB_TASK_TYPES.get(words[0]) if words else None
    minutes = TASK_TYPE_DEFAULT_MINUTES[task_type] if task_type else DEFAULT_RULE_MINUTES
    buffer = load_config().braindump.time_buffer_percent
    return int(round(minutes * (1 + buffer / 100)))


def make_title(body: str) -> str:
    title = body.strip().rstrip(",:-").strip()
    return title[0].upper() + title[1:] if title else title


def extract_simple(text: str) -> Dict[str, Any]:
    """
    Rule-based extraction fallback.

    Used when the LLM is not available or its response is unusable.
    """
    config = load_config().braindump
    tasks = []

    for fragment in split_fragments(text):
        if not is_actionable(fragment):
            continue
        body, _ = strip_lead_in(fragment)
        minutes = estimate_minutes(body)
        tasks.append({
            "title": make_title(body),
            "estimated_minutes": minutes,
            "priority": detect_priority(fragment),
            "category": detect_category(fragment),
            "suggestion": "Break this into smaller steps before starting" if minutes >= 60 else None,
            "related_person": detect_person(fragment),
            "due_context": detect_due_context(fragment),
        })

    tasks = tasks[:config.max_tasks]

    words = set(WORD_PATTERN.findall(text.lower()))
    if "overwhelmed" in words:
        mood = "overwhelmed"
    elif words.intersection(STRESS_WORDS):
        mood = "stressed"
    else:
        mood = "neutral"

    if tasks:
        smallest = min(tasks, key=lambda task: task["estimated_minutes"])
        count = len(tasks)
        observation = (
            f"That's {count} thing{'s' if count != 1 else ''} out of your head. "
            f"Starting with \"{smallest['title']}\" could build some momentum."
        )
    else:
        observation = "Nothing here needs doing right now. Sometimes writing it out is enough."

    themes = []
    for task in tasks:
        if task["category"] != "other" and task["category"] not in themes:
            themes.append(task["category"])

    return {
        "success": True,
        "data": {
            "tasks": tasks,
            "overall_mood": mood,
            "gentle_observation": observation,
            "detected_themes": themes,
        },
    }


def extract_tasks(text: str, use_llm: Optional[bool] = None, fallback: bool = True) -> Dict[str, Any]:
    """
    Extract tasks from a brain dump.

    Args:
        text: The brain dump
        use_llm: Try the LLM first (defaults to config)
        fallback: Fall back to rules when the LLM fails

    Returns:
        dict with tasks, mood, observation, themes and source
    """
    if not text or not text.strip():
        return {"success": False, "error": "Nothing to process"}

    if use_llm is None:
        use_llm = load_config().braindump.use_llm

    if use_llm:
        result = extract_with_llm(text)
        if result["success"]:
            result["data"]["source"] = "llm"
            return result
        if not fallback:
            return result
        logger.warning("llm_extraction_fallback", error=result["error"])

    result = extract_simple(text)
    result["data"]["source"] = "rules"
    return result


def main():
    parser = argparse.ArgumentParser(description="Brain Dump Extractor - text to tasks")
    parser.add_argument("--text", required=True, help="Brain dump text")
    parser.add_argument("--no-llm", action="store_true", help="Use rule-based extraction only")

    args = parser.parse_args()

    result = extract_tasks(args.text, use_llm=not args.no_llm)

    print(json.dumps(result, indent=2))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
