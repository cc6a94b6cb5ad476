"""Find ```plantuml fenced blocks in Markdown text."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


_PLANTUML_FENCE = re.compile(r"```plantuml\s*\n([\s\S]*?)```")


@dataclass
class PlantUmlBlock:
    id: str
    code: str
    start_index: int
    end_index: int


def extract_plantuml_blocks(markdown: str) -> List[PlantUmlBlock]:
    blocks = []
    for index, match in enumerate(_PLANTUML_FENCE.finditer(markdown)):
        blocks.append(
            PlantUmlBlock(
                id=f"plantuml-block-{index}",
                code=match.group(1).strip(),
                start_index=match.start(),
                end_index=match.end(),
            )
        )
    return blocks
