from __future__ import annotations

import re

# Accession numbers like "1998.5.12a" plus an optional same-line description,
# e.g. "1998.5.12a Ceramic bowl, glazed".
LABEL_PATTERN = re.compile(r"(?<!\d)\d{4}\.\d{1,3}\.\d{1,3}[a-z]?[-\w]*(?:[ \t][\w \t,]+)?")


def extract_labels(text: str) -> list[str]:
    """
    Return unique labels in order of first appearance in `text`.

    Later duplicates are dropped. No match yields an empty list.
    """

    labels: list[str] = []
    seen: set[str] = set()
    for m in LABEL_PATTERN.finditer(text):
        label = m.group(0).strip()
        if not label or label in seen:
            continue
        seen.add(label)
        labels.append(label)
    return labels
