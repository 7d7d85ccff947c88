"""Brain Dump - free text in, discrete tasks out

Philosophy:
    Getting everything out of your head is the first step. Sorting it
    into tasks is the second, and the one people skip. The extractor does
    the sorting; the user only picks which tasks to keep.

Components:
    extractor.py: LLM extraction with a rule-based fallback
    session.py: Dump lifecycle, selection, adding tasks, due context

Usage:
    from veloce.braindump.session import process_brain_dump, add_selected_to_tasks

    dump = process_brain_dump(user_id="alice", text="need to call mom, pay rent asap")
    add_selected_to_tasks(dump["data"]["id"])
"""

from veloce import DATA_DIR, PROMPTS_DIR

DB_PATH = DATA_DIR / "braindump.db"
PROMPT_PATH = PROMPTS_DIR / "braindump" / "extraction.md"

# Dump lifecycle
STATES = ("input", "processing", "results", "error", "added")

PRIORITIES = ("low", "medium", "high")

# Dumps processed before brain_dump_master unlocks
BRAIN_DUMP_MASTER_TARGET = 10

# Urgency cues that make an extracted task high priority
URGENCY_CUES = ("asap", "urgent", "must", "deadline", "today", "immediately", "right away")
LOW_PRIORITY_CUES = ("someday", "eventually", "maybe", "at some point", "when i can")

# Phrases that introduce something to do
LEAD_INS = (
    "i need to", "need to", "i have to", "have to", "i've got to", "i gotta", "gotta",
    "i should", "should", "i must", "must", "remember to", "don't forget to",
    "dont forget to", "i want to", "want to", "todo:", "to do:",
)

ACTION_VERBS = (
    "ask", "book", "buy", "call", "cancel", "check", "clean", "cook", "do", "email",
    "exercise", "file", "finish", "fix", "get", "go", "learn", "make", "meditate",
    "message", "order", "organize", "pay", "pick", "plan", "practice", "prepare",
    "read", "renew", "reply", "research", "return", "review", "run", "schedule",
    "send", "sign", "start", "study", "submit", "text", "update", "visit", "walk",
    "wash", "watch", "write",
)

# First matching category wins
CATEGORY_KEYWORDS = {
    "work": ("work", "report", "meeting", "client", "boss", "presentation", "project", "office", "deadline", "slides"),
    "health": ("doctor", "dentist", "gym", "exercise", "workout", "meditate", "pharmacy", "prescription", "therapy", "run", "walk"),
    "finance": ("pay", "bill", "bills", "bank", "tax", "taxes", "invoice", "budget", "rent", "insurance"),
    "social": ("mom", "dad", "friend", "friends", "birthday", "party", "family", "sister", "brother", "wedding"),
    "learning": ("study", "course", "learn", "practice", "lesson", "research", "exam"),
    "personal": ("groceries", "clean", "laundry", "house", "car", "errands", "cook", "dishes", "garden"),
}

# Verb -> task type for rule-based time estimates
VERB_TASK_TYPES = {
    "call": "communicate", "email": "communicate", "text": "communicate", "message": "communicate",
    "reply": "communicate", "send": "communicate", "ask": "communicate",
    "book": "coordinate", "schedule": "coordinate", "plan": "coordinate", "organize": "coordinate",
    "cancel": "coordinate", "renew": "coordinate", "order": "coordinate", "pay": "coordinate",
    "read": "consume", "review": "consume", "study": "consume", "watch": "consume", "research": "consume",
    "write": "create", "finish": "create", "prepare": "create", "make": "create", "fix": "create",
}

STRESS_WORDS = ("stressed", "overwhelmed", "anxious", "worried", "panic", "exhausted", "tired", "behind")

FAMILY_WORDS = ("mom", "dad", "mum", "grandma", "grandpa", "sister", "brother")

__all__ = [
    "DB_PATH",
    "PROMPT_PATH",
    "STATES",
    "PRIORITIES",
    "BRAIN_DUMP_MASTER_TARGET",
    "URGENCY_CUES",
    "LOW_PRIORITY_CUES",
    "LEAD_INS",
    "ACTION_VERBS",
    "CATEGORY_KEYWORDS",
    "VERB_TASK_TYPES",
    "STRESS_WORDS",
    "FAMILY_WORDS",
]
