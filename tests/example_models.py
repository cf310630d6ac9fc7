"""Model documents shared by the compiler, source and cli tests."""

from __future__ import annotations

from typing import Any


def lamp_document(**overrides: Any) -> dict[str, Any]:
    """
    Two tier application: Db produces Sql, Web consumes it.

    Instance Lamp[foo] places Db[foo] on n1 and Web[foo] on n2.
    """
    doc: dict[str, Any] = {
        "environment": "production",
        "component_types": [
            {
                "name": "Db",
                "parameters": [{"name": "port", "default": 5432}],
                "produces": [{"kind": "Sql", "title": "$name"}],
            },
            {
                "name": "Web",
                "parameters": ["db"],
                "consumes": [{"kind": "Sql", "parameter": "db"}],
            },
        ],
        "applications": [
            {
                "name": "Lamp",
                "parameters": [{"name": "dbname", "default": "${name}_db"}],
                "components": [
                    {"type": "Db", "title": "$name"},
                    {"type": "Web", "title": "$name", "arguments": {"db": {"capability": "Sql[$name]"}}},
                ],
            }
        ],
        "instances": [
            {
                "application": "Lamp",
                "title": "foo",
                "arguments": {"nodes": [["Node[n1]", "Db[foo]"], ["Node[n2]", ["Web[foo]"]]]},
            }
        ],
    }
    doc.update(overrides)
    return doc
