"""YAML file storage backend, one file per ticket."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

import yaml

from golem.core.models import TicketState
from golem.core.storage import TicketStorage

logger = logging.getLogger(__name__)

SUFFIX = ".yaml"

# mkstemp creates files as 0600
RECORD_MODE = 0o644


class YAMLTicketStorage(TicketStorage):
    """Stores each ticket as `<tickets_dir>/<id>.yaml`."""
    
    def __init__(self, tickets_dir: Path):
        """
        Initialize YAML storage.
        
        Args:
            tickets_dir: Directory holding ticket files (created on first save)
        """
        self.tickets_dir = Path(tickets_dir)
    
    def _path(self, ticket_id: str) -> Path:
        return self.tickets_dir / f"{ticket_id}{SUFFIX}"
    
    def load(self, ticket_id: str) -> Optional[TicketState]:
        path = self._path(ticket_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            return None
        
        try:
            data = yaml.safe_load(content)
            if not isinstance(data, dict):
                raise ValueError("ticket file is not a mapping")
            return TicketState.from_dict(data)
        except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unparseable ticket file %s: %s", path, e)
            return None
    
    def save(self, state: TicketState) -> None:
        self.tickets_dir.mkdir(parents=True, exist_ok=True)
        content = yaml.safe_dump(state.to_dict(), sort_keys=False, allow_unicode=True)
        
        # Write next to the target so the rename stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(
            dir=self.tickets_dir, prefix=f".{state.id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp_name, RECORD_MODE)
            os.replace(tmp_name, self._path(state.id))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
    
    def list_ids(self) -> List[str]:
        if not self.tickets_dir.is_dir():
            return []
        return [
            entry.name[: -len(SUFFIX)]
            for entry in os.scandir(self.tickets_dir)
            if entry.is_file() and entry.name.endswith(SUFFIX) and not entry.name.startswith(".")
        ]
