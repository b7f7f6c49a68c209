from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class SearchStatistics:
    """Per-level counters of one ``distance()`` run."""

    cells_considered: Counter = field(default_factory=Counter)
    cells_discarded: Counter = field(default_factory=Counter)
    cells_pruned: Counter = field(default_factory=Counter)
    cells_pushed: Counter = field(default_factory=Counter)
    hera_calls: Counter = field(default_factory=Counter)
    n_too_deep_cells: int = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "cells_considered": dict(sorted(self.cells_considered.items())),
            "cells_discarded": dict(sorted(self.cells_discarded.items())),
            "cells_pruned": dict(sorted(self.cells_pruned.items())),
            "cells_pushed": dict(sorted(self.cells_pushed.items())),
            "hera_calls": dict(sorted(self.hera_calls.items())),
            "n_too_deep_cells": self.n_too_deep_cells,
        }

    def log(self, logger: logging.Logger) -> None:
        for key, value in self.as_dict().items():
            logger.info("Exit stats, %s: %s", key.replace("_", " "), value)
