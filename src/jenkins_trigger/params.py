import csv
import logging
from typing import Dict, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from jenkins_trigger.errors import MalformedParameters

logger = logging.getLogger(__name__)

_STRING_MAP = TypeAdapter(Dict[str, str])


def split_param_values(values: Iterable[str]) -> List[str]:
    """
    Expands flag values that carry several comma separated parameters,
    e.g. ["foo=bar,baz=qux"] -> ["foo=bar", "baz=qux"]. Quoted fields may contain commas.
    """
    entries = []
    for value in values:
        if not value:
            continue
        for row in csv.reader([value]):
            entries.extend(row)
    return entries


def resolve_parameters(pairs: Iterable[str], raw_json: Optional[str] = None) -> Dict[str, str]:
    """
    Merges JSON parameters and key=value entries into one mapping.

    JSON is applied first, then the key=value entries, so a key present in both
    takes its value from the list. Only the first '=' separates key from value;
    an entry without '=' yields an empty value for that key.
    """
    params: Dict[str, str] = {}
    if raw_json:
        try:
            params.update(_STRING_MAP.validate_json(raw_json))
        except ValidationError as e:
            logger.warning(f"Rejected JSON build parameters: {e.errors()}")
            raise MalformedParameters(f"Invalid JSON parameters {raw_json!r}: expected an object of strings") from e

    for entry in pairs:
        key, _, value = entry.partition('=')
        params[key] = value
    return params
