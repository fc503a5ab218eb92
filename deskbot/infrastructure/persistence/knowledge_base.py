"""
Knowledge Base - Keyword Passages and FAQ Answers
=================================================

Two read-only lookup tables loaded once at startup:
- knowledge.json: [{"keyword": "harga", "info": "..."}]  (grounds AI answers)
- faq.json:       [{"question": "...", "answer": "..."}]  (answered verbatim)

A missing or broken file is logged and treated as empty.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeEntry:
    keyword: str
    info: str


@dataclass(frozen=True)
class FaqEntry:
    question: str
    answer: str


class KnowledgeBase:

    def __init__(self, knowledge: Optional[List[KnowledgeEntry]] = None, faq: Optional[List[FaqEntry]] = None):
        self.knowledge = list(knowledge or [])
        self.faq = list(faq or [])

    @classmethod
    def from_files(cls, knowledge_file: Path, faq_file: Path) -> "KnowledgeBase":
        knowledge = [
            KnowledgeEntry(keyword=str(row["keyword"]).strip().lower(), info=str(row["info"]))
            for row in _read_rows(knowledge_file, ("keyword", "info"))
        ]
        faq = [
            FaqEntry(question=str(row["question"]).strip(), answer=str(row["answer"]))
            for row in _read_rows(faq_file, ("question", "answer"))
        ]
        logger.info(
            "Knowledge base loaded",
            extra={"meta": {"knowledge": len(knowledge), "faq": len(faq)}},
        )
        return cls(knowledge, faq)

    def find_faq(self, text: str) -> Optional[FaqEntry]:
        """FAQ whose question equals, or is contained in, the lowercased text."""
        lower = (text or "").strip().lower()
        if not lower:
            return None
        for entry in self.faq:
            question = entry.question.lower()
            if question and (lower == question or question in lower):
                return entry
        return None

    def find_context(self, text: str) -> Optional[str]:
        """Info passage for the first keyword found in the lowercased text."""
        lower = (text or "").lower()
        for entry in self.knowledge:
            if entry.keyword and entry.keyword in lower:
                return entry.info
        return None

    def faq_questions(self) -> List[str]:
        return [entry.question for entry in self.faq]


def _read_rows(path: Path, required: tuple) -> list:
    path = Path(path)
    if not path.exists():
        logger.warning(f"File {path.name} tidak ditemukan.")
        return []
    try:
        raw = path.read_text(encoding="utf-8")
        rows = json.loads(raw) if raw.strip() else []
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Gagal memuat {path.name}", extra={"meta": {"error": e}})
        return []

    if not isinstance(rows, list):
        logger.error(f"{path.name} must contain a JSON list")
        return []

    valid = [row for row in rows if isinstance(row, dict) and all(k in row for k in required)]
    if len(valid) != len(rows):
        logger.warning(f"Skipped {len(rows) - len(valid)} malformed rows in {path.name}")
    return valid
