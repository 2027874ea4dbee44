"""
Re-binding template charts to the headers of a different sheet.
"""

from typing import Dict, List, Optional, Sequence

from models.chart_models import ChartConfig, MatchStrategy
from utils.logger import get_logger

logger = get_logger(__name__)

SIMILARITY_THRESHOLD = 0.5


def calculate_similarity(first: str, second: str) -> float:
    """
    Jaccard similarity of the two names' character sets, case-insensitive.

    Identical names score 1.0 and an empty name scores 0.0.
    """
    first = first.lower()
    second = second.lower()

    if first == second:
        return 1.0
    if not first or not second:
        return 0.0

    first_chars = set(first)
    second_chars = set(second)
    return len(first_chars & second_chars) / len(first_chars | second_chars)


def find_best_matching_header(original: str, headers: Sequence[str]) -> Optional[str]:
    """Header with the highest similarity strictly above the threshold; the first one wins ties."""
    best_match = None
    best_similarity = SIMILARITY_THRESHOLD

    for header in headers:
        similarity = calculate_similarity(original, header)
        if similarity > best_similarity:
            best_similarity = similarity
            best_match = header

    return best_match


def bound_fields(config: ChartConfig) -> List[str]:
    """Field names a chart config refers to, in axis-then-series order, without repeats."""
    fields: List[str] = []
    candidates = [
        config.x_axis.field if config.x_axis else None,
        config.y_axis.field if config.y_axis else None,
    ] + [s.field for s in config.series]
    for field in candidates:
        if field and field not in fields:
            fields.append(field)
    return fields


def build_field_mapping(
    original_fields: Sequence[str],
    new_headers: Sequence[str],
    strategy: MatchStrategy,
    header_mappings: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """
    Map original field names onto new header names.

    exact keeps every name as-is (even when it no longer exists), manual
    uses the caller's table, fuzzy keeps names that still exist and looks up
    the closest header for the rest. Fields without a mapping are left out.
    """
    if strategy == MatchStrategy.EXACT:
        return {field: field for field in original_fields}

    if strategy == MatchStrategy.MANUAL:
        mappings = header_mappings or {}
        return {field: mappings[field] for field in original_fields if mappings.get(field)}

    mapping: Dict[str, str] = {}
    headers = list(new_headers)
    for field in original_fields:
        if field in headers:
            mapping[field] = field
            continue
        best_match = find_best_matching_header(field, headers)
        if best_match is not None:
            logger.debug(f"Fuzzy matched field '{field}' -> '{best_match}'")
            mapping[field] = best_match
        else:
            logger.debug(f"No header similar enough to '{field}', leaving it unmapped")
    return mapping


def adjust_config_for_new_headers(
    config: ChartConfig,
    new_headers: Sequence[str],
    strategy: MatchStrategy,
    header_mappings: Optional[Dict[str, str]] = None,
) -> ChartConfig:
    """
    Copy of the config with its field bindings remapped.

    A remapped axis takes the new field as its title and a remapped series
    takes it as its name. Unmapped bindings are kept untouched.
    """
    adjusted = config.model_copy(deep=True)

    if strategy == MatchStrategy.EXACT:
        return adjusted
    if strategy == MatchStrategy.MANUAL and not header_mappings:
        return adjusted

    mapping = build_field_mapping(bound_fields(adjusted), new_headers, strategy, header_mappings)

    def remapped(field: str) -> Optional[str]:
        target = mapping.get(field) if field else None
        # fuzzy only rebinds fields that went missing; manual always applies
        if target and (strategy == MatchStrategy.MANUAL or target != field):
            return target
        return None

    for axis in (adjusted.x_axis, adjusted.y_axis):
        target = remapped(axis.field) if axis else None
        if target:
            axis.field = target
            axis.title = target

    for binding in adjusted.series:
        target = remapped(binding.field)
        if target:
            binding.field = target
            binding.name = target

    return adjusted
