"""
Export functionality for family tree layouts.

This module provides functions to hand a computed layout to a renderer:
- to_dict: Plain dicts and lists (clusters, nodes, routed paths)
- to_json: The same structure serialized as JSON

Example usage:
    from family_layout import FamilyTreeLayout
    from family_layout.export import to_json

    layout = FamilyTreeLayout(persons=persons).run()

    with open("tree.json", "w") as f:
        f.write(to_json(layout))
"""

from .json import to_dict, to_json

__all__ = [
    "to_dict",
    "to_json",
]
