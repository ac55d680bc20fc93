from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from cvmatch.core.config.scoring import get_scoring_value
from cvmatch.core.numeric import clamp_int, round_half_up
from cvmatch.schemas.analysis import ATSCheckResult, ATSReport

logger = logging.getLogger(__name__)

STANDARD_SECTIONS: list[tuple[str, list[re.Pattern[str]]]] = [
    ("Experience", [re.compile(r"experience", re.I), re.compile(r"work\s+history", re.I), re.compile(r"employment", re.I)]),
    ("Education", [re.compile(r"education", re.I), re.compile(r"academic", re.I), re.compile(r"qualification", re.I)]),
    ("Skills", [re.compile(r"skills", re.I), re.compile(r"competenc", re.I), re.compile(r"expertise", re.I)]),
]

QUANTIFICATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\d+%"),
    re.compile(r"\$\d+[MKk]?"),
    re.compile(r"\d+\+?\s*(?:years?|months?)", re.I),
    re.compile(r"team of \d+", re.I),
    re.compile(r"\d+x", re.I),
    re.compile(r"reduced.*by \d+", re.I),
    re.compile(r"increased.*by \d+", re.I),
    re.compile(r"grew.*from \d+.*to \d+", re.I),
]

EMOJI_RE = re.compile("[\U0001F300-\U0001F5FF\U0001F600-\U0001F64F\U0001F680-\U0001F6FF]")
DECORATIVE_RE = re.compile("[★☆●○■□▪▫◆◇]")
ARROW_RE = re.compile("[►▸‣⦿⦾]")

CHECK_ORDER = ("sections", "quantification", "formatting", "keywordStuffing", "length")

_BAND_TEXT = {
    "excellent": "Excellent ATS compatibility: the CV should parse cleanly in most applicant tracking systems.",
    "good": "Good ATS compatibility with a few improvements available.",
    "moderate": "Moderate ATS compatibility: several issues may reduce how well the CV is parsed.",
    "poor": "Poor ATS compatibility: the CV is likely to be misread or filtered out.",
}


def _band(percent: int) -> str:
    bands = get_scoring_value("ats.bands", {}) or {}
    if percent >= int(bands.get("excellent", 90)):
        return "excellent"
    if percent >= int(bands.get("good", 70)):
        return "good"
    if percent >= int(bands.get("moderate", 50)):
        return "moderate"
    return "poor"


def _points() -> int:
    return int(get_scoring_value("ats.points_per_check", 20))


def check_standard_sections(text: str) -> dict[str, Any]:
    found = [name for name, patterns in STANDARD_SECTIONS if any(p.search(text) for p in patterns)]
    missing = [name for name, _ in STANDARD_SECTIONS if name not in found]
    score = round_half_up(_points() * len(found) / len(STANDARD_SECTIONS))
    return {"score": score, "found": found, "missing": missing}


def check_quantifications(text: str) -> dict[str, Any]:
    count = 0
    examples: list[str] = []
    for pattern in QUANTIFICATION_PATTERNS:
        matches = [match.group(0) for match in pattern.finditer(text)]
        count += len(matches)
        examples.extend(matches[:2])
    minimum = int(get_scoring_value("ats.min_quantifications", 5))
    score = min(_points(), round_half_up(_points() * count / minimum))
    return {"score": score, "count": count, "examples": examples[:5]}


def check_formatting(text: str) -> dict[str, Any]:
    has_emojis = bool(EMOJI_RE.search(text))
    has_special_chars = bool(DECORATIVE_RE.search(text))
    arrow_count = len(ARROW_RE.findall(text))
    too_many_symbols = arrow_count > int(get_scoring_value("ats.max_arrow_symbols", 10))
    is_clean = not (has_emojis or has_special_chars or too_many_symbols)
    return {
        "score": _points() if is_clean else _points() // 2,
        "has_emojis": has_emojis,
        "has_special_chars": has_special_chars,
        "arrow_symbols": arrow_count,
    }


def check_keyword_stuffing(text: str) -> dict[str, Any]:
    words = text.lower().split()
    min_length = int(get_scoring_value("ats.stuffing_min_token_length", 4))
    frequency_limit = float(get_scoring_value("ats.stuffing_frequency", 0.05))
    min_occurrences = int(get_scoring_value("ats.stuffing_min_occurrences", 10))

    counts = Counter(word for word in words if len(word) >= min_length)
    total = len(words)
    suspicious = [
        {"word": word, "count": count}
        for word, count in counts.most_common()
        if total and count / total > frequency_limit and count > min_occurrences
    ]
    return {
        "score": _points() if not suspicious else _points() // 2,
        "suspicious_words": suspicious[:3],
    }


def check_length(text: str) -> dict[str, Any]:
    word_count = len(text.split())
    min_words = int(get_scoring_value("ats.min_words", 200))
    max_words = int(get_scoring_value("ats.max_words", 1500))
    issue: str | None = None
    recommendation: str | None = None
    if word_count < min_words:
        issue = "CV is too short"
        recommendation = "Expand your CV with more details about your experience and achievements (aim for 400-800 words)"
    elif word_count > max_words:
        issue = "CV is too long"
        recommendation = "Condense your CV to 1-2 pages (aim for 400-800 words total)"
    return {
        "score": _points() if issue is None else _points() // 2,
        "word_count": word_count,
        "issue": issue,
        "recommendation": recommendation,
    }


def _check_rationale(check_id: str, result: dict[str, Any]) -> str:
    band = _band(int(result["score"]) * 100 // _points())
    if check_id == "sections":
        if not result["missing"]:
            return "All standard section headers (Experience, Education, Skills) were found."
        return f"Standard headers found: {', '.join(result['found']) or 'none'}; missing: {', '.join(result['missing'])}."
    if check_id == "quantification":
        return f"{result['count']} quantified achievements detected ({band})."
    if check_id == "formatting":
        if band == "excellent":
            return "No emojis or decorative symbols that confuse ATS parsers."
        return "Emojis or decorative symbols were found; ATS parsers may drop or garble them."
    if check_id == "keywordStuffing":
        if not result["suspicious_words"]:
            return "Keyword usage looks natural."
        words = ", ".join(item["word"] for item in result["suspicious_words"])
        return f"Some words repeat unusually often: {words}."
    return f"The CV has {result['word_count']} words ({band})."


def check_ats_friendliness(text: str) -> ATSReport:
    """Score how safely a CV passes through applicant tracking systems (0-100, five checks of 20)."""
    text = text or ""
    results = {
        "sections": check_standard_sections(text),
        "quantification": check_quantifications(text),
        "formatting": check_formatting(text),
        "keywordStuffing": check_keyword_stuffing(text),
        "length": check_length(text),
    }
    points = _points()
    issues: list[str] = []
    recommendations: list[str] = []

    sections = results["sections"]
    if sections["missing"]:
        issues.append("Missing or non-standard section headers")
        recommendations.append(f"Use standard headers like: {', '.join(sections['missing'])}")

    quantification = results["quantification"]
    if quantification["score"] < points:
        issues.append(f"Only {quantification['count']} quantified achievements found")
        recommendations.append("Add numbers and metrics to your achievements (%, $, time saved, team size, etc.)")

    if results["formatting"]["score"] < points:
        issues.append("Potential formatting issues detected")
        recommendations.append("Avoid special characters, emojis, and complex formatting. Use simple bullet points.")

    if results["keywordStuffing"]["score"] < points:
        issues.append("Possible keyword stuffing detected")
        recommendations.append("Integrate keywords naturally in context, not as random lists")

    length = results["length"]
    if length["issue"]:
        issues.append(length["issue"])
        recommendations.append(length["recommendation"])

    checks = {
        check_id: ATSCheckResult(
            score=clamp_int(result["score"], 0, points),
            passed=result["score"] >= points,
            details={key: value for key, value in result.items() if key != "score"},
        )
        for check_id, result in results.items()
    }
    score = sum(check.score for check in checks.values())
    explanations = {check_id: _check_rationale(check_id, results[check_id]) for check_id in CHECK_ORDER}
    explanations["overall"] = _BAND_TEXT[_band(score)]

    logger.info("ats_check score=%s issues=%s", score, len(issues))
    return ATSReport(
        score=score,
        issues=issues,
        recommendations=recommendations,
        explanations=explanations,
        checks=checks,
    )
