"""
Tag index: inverts animation -> tag into tag -> animation names.
"""

from typing import Dict, Iterable, List

from ..descriptors import AnimationDescriptor


def build_tag_index(descriptors: Iterable[AnimationDescriptor]) -> Dict[str, List[str]]:
    """
    Group animation names by tag in descriptor encounter order.

    The empty tag is a regular key. Names are appended once per descriptor,
    so a name declared twice appears twice.
    """
    index: Dict[str, List[str]] = {}

    for descriptor in descriptors:
        index.setdefault(descriptor.tag, []).append(descriptor.name)

    return index
