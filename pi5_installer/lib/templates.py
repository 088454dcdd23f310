from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

_TOKEN = re.compile(r"@([A-Z][A-Z0-9_]*)@")


def load_template(name: str) -> str:
    return (TEMPLATES_DIR / name).read_text(encoding="utf-8")


def render(text: str, values: Mapping[str, object]) -> str:
    """Substitute @NAME@ tokens in a shell template.

    Every token must have a value; shell `$VAR` syntax is left untouched.
    """

    def _sub(m: re.Match) -> str:
        key = m.group(1)
        if key not in values:
            raise KeyError(f"No value for template token @{key}@")
        return str(values[key])

    return _TOKEN.sub(_sub, text)


def render_template(name: str, values: Mapping[str, object]) -> str:
    return render(load_template(name), values)
