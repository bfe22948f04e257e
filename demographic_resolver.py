"""Expand free-form ethnicity terms into the taxonomy values the tract tables use."""
import re
from typing import Any, Dict, Iterable, List, Optional, Set

from config import (
    ETHNICITY_ALIASES,
    ETHNICITY_GROUP_RULES,
    ETHNICITY_TAXONOMY,
    MAX_ETHNICITY_SELECTIONS,
)

_NON_LETTERS = re.compile(r"[^a-z]")


def clean_term(term: str) -> str:
    """Lowercase and strip everything but ASCII letters ("East-Asian" -> "eastasian")."""
    return _NON_LETTERS.sub("", term.lower())


def _alias_groups(clean_key: str) -> Set[str]:
    return {group for group, synonyms in ETHNICITY_ALIASES.items() if clean_key in synonyms}


def _term_matches(clean_key: str, groups: Set[str]) -> List[str]:
    matches = []
    for _key, label, value, parent in ETHNICITY_TAXONOMY:
        parent_group = parent.replace("group_", "", 1).lower()
        if parent_group in groups or clean_key in clean_term(label) or value == clean_key:
            matches.append(value)
    return matches


def resolve_ethnicities(raw_terms: Optional[Iterable[Any]]) -> List[str]:
    """
    Resolve user terms to taxonomy values.

    A term selects an entry when its alias group is the entry's parent, when
    its clean key is a substring of the entry's clean label, or when it equals
    the entry's value. Terms matching nothing are ignored. The result is
    de-duplicated and listed in taxonomy order.
    """
    selected: Set[str] = set()
    for term in raw_terms or []:
        if not isinstance(term, str):
            continue
        clean_key = clean_term(term)
        if not clean_key:
            continue
        matches = _term_matches(clean_key, _alias_groups(clean_key))
        if not matches:
            print(f"[DemographicResolver] No taxonomy match for '{term}'")
        selected.update(matches)

    return [value for _key, _label, value, _parent in ETHNICITY_TAXONOMY if value in selected]


def get_ethnicity_groups() -> Dict[str, List[str]]:
    """Map the eight coarse group names to their member values. Membership may overlap."""
    groups: Dict[str, List[str]] = {}
    for group, (rule, target) in ETHNICITY_GROUP_RULES.items():
        if rule == "parent":
            groups[group] = [value for _key, _label, value, parent in ETHNICITY_TAXONOMY if parent == target]
        else:
            groups[group] = [value for _key, label, value, _parent in ETHNICITY_TAXONOMY if target in label.lower()]
    return groups


def validate_ethnicity_selection(terms: Optional[List[Any]]) -> Dict[str, Any]:
    """Flag selections that resolve to nothing, mix a group with its members, or are too broad."""
    result: Dict[str, Any] = {"is_valid": True, "warnings": [], "suggestions": []}
    if not terms:
        result["suggestions"].append("Select ethnicities to filter by demographic composition")
        return result

    matches_by_term = {str(term): set(resolve_ethnicities([term])) for term in terms}
    unmatched = [term for term, matches in matches_by_term.items() if not matches]
    if unmatched:
        result["warnings"].append(f"No matching ethnicity data for: {', '.join(unmatched)}")
        result["suggestions"].append("Try broad groups such as 'asian' or 'hispanic', or a listed origin such as 'puerto rican'")

    overlaps = []
    for broad, broad_matches in matches_by_term.items():
        if not any(value.startswith("group_") for value in broad_matches):
            continue
        for narrow, narrow_matches in matches_by_term.items():
            if narrow != broad and narrow_matches and narrow_matches < broad_matches:
                overlaps.append(f"{broad} already covers {narrow}")
    if overlaps:
        result["warnings"].append(f"Group and member both selected: {'; '.join(overlaps)}")
        result["suggestions"].append("Use either a broad group or specific origins, not both")

    if len(terms) > MAX_ETHNICITY_SELECTIONS:
        result["warnings"].append("Many ethnicities selected, results may be too broad to be useful")
        result["suggestions"].append("Narrow the selection to the 3-5 most important groups")

    result["is_valid"] = not unmatched
    return result
