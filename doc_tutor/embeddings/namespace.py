"""
Active Namespace - Which document collection is "current".

The upload flow indexes every document into its own namespace (a separate
collection in the vector index) and then points this small JSON record at it:

    {"namespace": "lease-agreement-2024", "lastUpdated": "2024-05-01T10:00:00+00:00"}

Searches read the pointer on every request. If it is missing or broken we
simply search the default collection instead, so reading never raises.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from doc_tutor.config import ACTIVE_NAMESPACE_FILE
from doc_tutor.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class NamespacePointer:
    """
    The persisted pointer record.

    Attributes:
        namespace: Name of the active collection (already trimmed)
        last_updated: ISO-8601 timestamp of the last write
    """

    namespace: str
    last_updated: str

    def to_dict(self) -> dict:
        return {"namespace": self.namespace, "lastUpdated": self.last_updated}


class ActiveNamespaceStore:
    """
    Reads and writes the active namespace pointer file.

    Example:
        store = ActiveNamespaceStore()
        store.set_active_namespace("docs1")
        print(store.get_active_namespace())  # "docs1"
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or ACTIVE_NAMESPACE_FILE)

    def read_pointer(self) -> NamespacePointer | None:
        """
        Load the pointer, or None if it is absent or unusable.

        Missing file, unreadable file, bad JSON and a blank or non-string
        namespace are all treated the same way.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Error reading active namespace file %s: %s", self.path, e)
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Error parsing active namespace file %s: %s", self.path, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Invalid namespace record in %s", self.path)
            return None

        namespace = data.get("namespace")
        if not isinstance(namespace, str) or not namespace.strip():
            logger.warning("Invalid namespace in %s", self.path)
            return None

        last_updated = data.get("lastUpdated")
        return NamespacePointer(
            namespace=namespace.strip(),
            last_updated=last_updated if isinstance(last_updated, str) else "",
        )

    def get_active_namespace(self) -> str | None:
        """Return the active namespace name, or None to search unscoped."""
        pointer = self.read_pointer()
        if pointer is None:
            return None
        logger.info("Using active namespace: %s", pointer.namespace)
        return pointer.namespace

    def set_active_namespace(self, namespace: str) -> NamespacePointer:
        """
        Overwrite the pointer with a new namespace.

        Raises:
            ValidationError: If the namespace is blank
        """
        if not isinstance(namespace, str) or not namespace.strip():
            raise ValidationError("Namespace must be a non-empty string")

        pointer = NamespacePointer(
            namespace=namespace.strip(),
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(pointer.to_dict(), indent=2), encoding="utf-8")
        logger.info("Active namespace set to %s", pointer.namespace)
        return pointer

    def clear(self) -> None:
        """Remove the pointer so searches go to the default collection."""
        self.path.unlink(missing_ok=True)
