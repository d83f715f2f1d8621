"""Media introspection: source descriptors from mkvmerge."""

from vlr.introspector.interface import MediaIntrospectionError, MediaIntrospector
from vlr.introspector.mkvmerge import MkvmergeIntrospector
from vlr.introspector.parsers import classify_path, parse_mkvmerge_output

__all__ = [
    "MediaIntrospectionError",
    "MediaIntrospector",
    "MkvmergeIntrospector",
    "classify_path",
    "parse_mkvmerge_output",
]
