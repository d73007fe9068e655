"""Extraction of a single record from differently shaped result payloads.

The remote CLI wraps the same logical record in several envelopes. Each
matcher below recognizes one envelope and either returns the record or
declines with None; extract_record() tries them in order.
"""

import json
from typing import Any, Callable, List, Optional, Sequence

ShapeMatcher = Callable[[Any, Sequence[str]], Optional[Any]]

def _has_identity(obj: Any, identity_keys: Sequence[str]) -> bool:
    return isinstance(obj, dict) and any(obj.get(key) for key in identity_keys)

def _first(items: Any) -> Optional[Any]:
    if isinstance(items, list) and items:
        return items[0]
    return None

def match_success_data_list(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """{'status': 'success', 'data': [record, ...]}"""
    if isinstance(payload, dict) and payload.get('status') == 'success':
        return _first(payload.get('data'))
    return None

def match_top_level_list(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """[record, ...]"""
    return _first(payload)

def match_result_wrapper(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """{'result': [...]}, {'result': {'data': [...]}} or {'result': record}"""
    if not isinstance(payload, dict) or not payload.get('result'):
        return None
    result = payload['result']
    if isinstance(result, list):
        return _first(result)
    if isinstance(result, dict):
        found = _first(result.get('data'))
        if found is not None:
            return found
        if _has_identity(result, identity_keys):
            return result
    return None

def match_data_object(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """{'data': record}"""
    if isinstance(payload, dict) and _has_identity(payload.get('data'), identity_keys):
        return payload['data']
    return None

def match_root_object(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """record"""
    return payload if _has_identity(payload, identity_keys) else None

def match_output_json(payload: Any, identity_keys: Sequence[str]) -> Optional[Any]:
    """{'output': '<json text of any shape above>'}"""
    if not isinstance(payload, dict) or not isinstance(payload.get('output'), str):
        return None
    try:
        parsed = json.loads(payload['output'])
    except ValueError:
        return None
    return extract_record(parsed, identity_keys)

DEFAULT_MATCHERS: List[ShapeMatcher] = [
    match_success_data_list,
    match_top_level_list,
    match_result_wrapper,
    match_data_object,
    match_root_object,
    match_output_json,
]

def extract_record(
    payload: Any,
    identity_keys: Sequence[str],
    matchers: Sequence[ShapeMatcher] = DEFAULT_MATCHERS,
) -> Optional[Any]:
    """Returns the first record any matcher extracts, or None.

    Args:
        payload: Raw result payload from the remote service.
        identity_keys: Field names whose presence marks a dict as the record.
        matchers: Ordered shape matchers to try.
    """
    if not payload:
        return None
    for matcher in matchers:
        found = matcher(payload, identity_keys)
        if found is not None:
            return found
    return None
