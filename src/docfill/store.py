"""Read and write drafts as JSON files.

One file per draft under ``<output_dir>/drafts``. Writes go through a temp
file and ``os.replace`` so a crash never leaves a half-written draft.
"""

import logging
import os
import tempfile
from pathlib import Path

from docfill.draft import Draft
from docfill.errors import DraftNotFoundError

logger = logging.getLogger(__name__)


class DraftStore:
    """JSON-file persistence for drafts."""

    def __init__(self, output_dir: Path):
        self.drafts_dir = Path(output_dir) / "drafts"

    def path_for(self, draft_id: str) -> Path:
        return self.drafts_dir / f"{draft_id}.json"

    def exists(self, draft_id: str) -> bool:
        return self.path_for(draft_id).exists()

    def save(self, draft: Draft) -> Path:
        """Persist the whole draft atomically."""
        self.drafts_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(draft.id)
        fd, tmp_name = tempfile.mkstemp(dir=self.drafts_dir, prefix=f".{draft.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(draft.model_dump_json(indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved draft {draft.id} to {path}")
        return path

    def load(self, draft_id: str) -> Draft:
        path = self.path_for(draft_id)
        if not path.exists():
            raise DraftNotFoundError(f"Draft not found: {draft_id}")
        return Draft.model_validate_json(path.read_text(encoding="utf-8"))

    def list_ids(self) -> list[str]:
        """Stored draft ids, most recently modified first."""
        if not self.drafts_dir.exists():
            return []
        paths = sorted(
            self.drafts_dir.glob("*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        return [p.stem for p in paths]
