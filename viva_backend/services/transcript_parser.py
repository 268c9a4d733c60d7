"""
Transcript parser: turns an "AI:/Student:" transcript into question/answer pairs.

The parse is a single deterministic pass over the non-empty lines. AI turns
may open a new question, Student turns accumulate the answer to the current
one, and a pair is emitted when the next AI turn arrives (or at the end).
"""
import re
from typing import List, Optional

from viva_backend.models.viva import QuestionAnswerPair

AI_LINE = re.compile(r"^(?:AI|bot|assistant):\s*(.+)", re.IGNORECASE)
STUDENT_LINE = re.compile(r"^(?:Student|user):\s*(.+)", re.IGNORECASE)

QUESTION_PATTERNS = [
    # Interrogative words
    re.compile(r"\b(?:what|how|why|when|where|which|who|whom|whose)\b", re.IGNORECASE),
    # Modal requests
    re.compile(r"\b(?:can|could|would|will) you\b", re.IGNORECASE),
    # Directives
    re.compile(r"\b(?:explain|describe|define|tell me|give me|list|name)\b", re.IGNORECASE),
    # Existential / confirmation
    re.compile(r"\b(?:is it|are there|do you|does it|have you|has it)\b", re.IGNORECASE),
]

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

LONG_QUESTION_CHARS = 200
FALLBACK_SENTENCES = 3


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def contains_question(text: str) -> bool:
    """True if the text reads as a question."""
    if not text:
        return False
    if "?" in text:
        return True
    return any(p.search(text) for p in QUESTION_PATTERNS)


def extract_question(text: str) -> str:
    """
    Pick the actual question out of an AI turn.

    Short turns are used whole. Long turns usually carry framing remarks
    before the question, so the last question-like sentence is used, or the
    last few sentences when no single sentence reads as a question.
    """
    cleaned = _normalize(text)
    if len(cleaned) <= LONG_QUESTION_CHARS:
        return cleaned

    sentences = [s.strip() for s in SENTENCE_SPLIT.split(cleaned) if s.strip()]
    questions = [s for s in sentences if contains_question(s)]
    if questions:
        return questions[-1]
    return " ".join(sentences[-FALLBACK_SENTENCES:])


def parse_transcript(transcript: str) -> List[QuestionAnswerPair]:
    """Parse a normalized transcript into ordered question/answer pairs."""
    pairs: List[QuestionAnswerPair] = []
    if not transcript or not transcript.strip():
        return pairs

    current_question: Optional[str] = None
    current_answer = ""
    last_turn: Optional[str] = None

    def emit():
        pairs.append(
            QuestionAnswerPair(
                question_number=len(pairs) + 1,
                question=current_question,
                answer=current_answer,
            )
        )

    for raw_line in transcript.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        ai_match = AI_LINE.match(line)
        if ai_match:
            text = _normalize(ai_match.group(1))
            if current_question and current_answer:
                emit()
                current_answer = ""

            if contains_question(text):
                question = extract_question(text)
                if question:
                    current_question = question
                    current_answer = ""
            elif last_turn != "AI":
                current_question = None
            last_turn = "AI"
            continue

        student_match = STUDENT_LINE.match(line)
        if student_match:
            if current_question is not None:
                text = _normalize(student_match.group(1))
                current_answer = f"{current_answer} {text}".strip()
            last_turn = "Student"

    if current_question and current_answer:
        emit()

    return pairs
