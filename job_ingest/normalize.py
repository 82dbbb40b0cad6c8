"""Normalization & early-career classification.

This module contains deterministic text logic:
- description cleanup (HTML stripping, whitespace collapse)
- multilingual early-career detection from title + description

Term lists are plain data. Add a language or a seniority marker by extending
the tuples below; the decision rule does not change. Everything here is pure,
so results are stable across replays and safe to cache.
"""

from __future__ import annotations

import html
import re
from typing import Iterable, List, Optional, Tuple

from .models import RawJobRecord
from .utils import uniq_preserve_order

# Early-career evidence. Each entry is a regex fragment matched from a word boundary.
POSITIVE_TERMS: Tuple[str, ...] = (
    # English
    r"graduates?\b",
    r"graduate[\s-]?(?:scheme|program(?:me)?)",
    r"new[\s-]?grads?\b",
    r"recent[\s-]?graduates?",
    r"campus[\s-]?hire",
    r"entry[\s-]?level",
    r"early[\s-]?careers?",
    r"junior\b",
    r"trainee(?:ship)?s?\b",
    r"intern(?:s|ship|ships)?\b",
    r"apprentice(?:ship)?s?\b",
    r"placement\s+(?:year|student)",
    r"working[\s-]?student",
    r"rotational[\s-]?program(?:me)?",
    r"fresher\b",
    # French
    r"stagiaire",
    r"alternan(?:ce|t|te)\b",
    r"apprenti(?:e|ssage)?\b",
    r"d[ée]butant(?:e)?",
    r"jeune[\s-]dipl[oô]m[ée]",
    r"premier[\s-]emploi",
    # German
    r"praktik(?:um|ant|antin)\b",
    r"traineeprogramm",
    r"berufseinst(?:ieg|eiger|eigerin)",
    r"absolvent(?:in|en|enprogramm)?\b",
    r"hochschulabsolvent",
    r"ausbildung",
    r"auszubildende[rn]?\b",
    r"azubi",
    r"werkstudent(?:in)?",
    r"nachwuchs",
    r"duales\s+studium",
    # Spanish
    r"becari[oa]s?\b",
    r"pr[aá]cticas",
    r"reci[eé]n[\s-](?:titulad|graduad)[oa]",
    r"programa\s+de\s+graduados",
    r"aprendiz\b",
    r"nivel\s+inicial",
    r"j[uú]nior\b",
    # Italian
    r"tirocini(?:o|ante)",
    r"stagista",
    r"apprendist(?:a|ato)\b",
    r"neo[\s-]?laureat[oaie]",
    r"nuovo\s+laureato",
    # Dutch
    r"stagiair(?:e)?\b",
    r"starters?functie",
    r"afgestudeerde",
    r"instapfunctie",
    r"leerwerkplek",
    # Nordic
    r"nyutdannet",
    r"nyuddannet",
    r"nyexaminerad",
)

# Seniority evidence. Any hit rejects the posting.
NEGATIVE_TERMS: Tuple[str, ...] = (
    r"senior\b",
    r"sr\b\.?",
    r"lead\b",
    r"team[\s-]?lead",
    r"tech[\s-]?lead",
    r"principal\b",
    r"director\b",
    r"head[\s-]of\b",
    r"vp\b",
    r"vice[\s-]president",
    r"chief\b",
    r"staff\s+(?:engineer|developer|scientist|designer)",
    r"architect\b",
    r"distinguished\b",
    r"executive\s+(?:level|director)",
    r"experienced\s+professional",
    r"extensive\s+experience",
    r"significant\s+experience",
    r"proven\s+track\s+record",
    r"(?:[3-9]|\d{2})\s*\+\s*(?:years|yrs|jahre|ans|años|anni|jaar)",
    r"[3-9]\s*[-–]\s*\d{1,2}\s+years",
    r"minimum\s+(?:of\s+)?(?:[3-9]|\d{2})\s+years",
    r"at\s+least\s+(?:[3-9]|\d{2})\s+years",
    # German
    r"(?:team|abteilungs|bereichs)?leiter(?:in)?\b",
    r"(?:langj|mehrj)[aä]hrige[rn]?\s+(?:berufs)?erfahrung",
    r"mindestens\s+(?:[3-9]|\d{2})\s+jahre",
    # French
    r"exp[ée]riment[ée]e?s?\b",
)


def compile_terms(terms: Iterable[str]) -> re.Pattern[str]:
    """OR a list of regex fragments into one case-insensitive pattern."""
    return re.compile(r"\b(?:" + "|".join(terms) + r")", re.IGNORECASE)


POSITIVE_RE = compile_terms(POSITIVE_TERMS)
NEGATIVE_RE = compile_terms(NEGATIVE_TERMS)

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_TAG_RE = re.compile(r"<\s*(?:br|/p|/li|/h[1-6]|/div)\s*/?\s*>", re.IGNORECASE)
_WS_RE = re.compile(r"[ \t\r\f\v]+")
_NL_RE = re.compile(r"\n{3,}")


def clean_description(text: Optional[str], max_len: int = 5000) -> str:
    """Strip HTML tags and entities, collapse whitespace and truncate."""
    if not text:
        return ""
    out = _BLOCK_TAG_RE.sub("\n", str(text))
    out = _TAG_RE.sub(" ", out)
    out = html.unescape(out).replace("\xa0", " ")
    out = _WS_RE.sub(" ", out)
    out = "\n".join(line.strip() for line in out.split("\n"))
    out = _NL_RE.sub("\n\n", out).strip()
    return out[:max_len]


def _blob(title: str, description: str) -> str:
    return f"{title or ''}\n{description or ''}"


def classify(
    title: Optional[str],
    description: Optional[str],
    *,
    positive: re.Pattern[str] = POSITIVE_RE,
    negative: re.Pattern[str] = NEGATIVE_RE,
) -> bool:
    """Return True when the posting is early-career relevant.

    keep = positive match AND NOT negative match, both evaluated over title and
    description together. A posting with no positive evidence is rejected, and
    so is one without a title.
    """
    if not (title or "").strip():
        return False
    blob = _blob(title or "", description or "")
    if not positive.search(blob):
        return False
    return negative.search(blob) is None


def find_evidence(
    title: Optional[str],
    description: Optional[str],
    *,
    positive: re.Pattern[str] = POSITIVE_RE,
    negative: re.Pattern[str] = NEGATIVE_RE,
) -> Tuple[List[str], List[str]]:
    """Return the distinct positive and negative terms found, for audit logs."""
    blob = _blob(title or "", description or "")
    pos = uniq_preserve_order(m.group(0) for m in positive.finditer(blob))
    neg = uniq_preserve_order(m.group(0) for m in negative.finditer(blob))
    return pos, neg


def is_early_career(record: RawJobRecord) -> bool:
    """Classify a raw record. Records without a company are rejected outright."""
    if not record.company.strip():
        return False
    return classify(record.title, record.description)
