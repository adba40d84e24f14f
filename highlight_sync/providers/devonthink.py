"""DEVONthink document store, driven through AppleScript (``osascript``)."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from highlight_sync.providers.content_types import Bookmark, SaveType
from highlight_sync.providers.document_store import DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "templates"

OSASCRIPT_TIMEOUT = 120.0


def as_string(value: object) -> str:
    """Escape a value for use inside an AppleScript string literal."""
    return str(value or "").replace("\\", "\\\\").replace('"', '\\"')


def as_list(values: tuple[str, ...] | list[str]) -> str:
    """AppleScript list literal of strings."""
    return "{" + ", ".join(f'"{as_string(v)}"' for v in values) + "}"


jinja = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)
jinja.filters["as_string"] = as_string
jinja.filters["as_list"] = as_list


class DevonthinkStore(DocumentStore):
    """Records in a DEVONthink group, looked up by name.

    ``database`` "global" means the global inbox database, ``group`` "inbox"
    the inbox itself. Any other group path is created on first use.
    """

    def __init__(
        self,
        database: str = "global",
        group: str = "inbox",
        *,
        osascript: str = "osascript",
        timeout: float = OSASCRIPT_TIMEOUT,
    ) -> None:
        self.database = database
        self.group = group
        self._osascript = osascript
        self._timeout = timeout

    @property
    def database_ref(self) -> str:
        if not self.database or self.database.lower() == "global":
            return "inbox"
        return f'database "{as_string(self.database)}"'

    @property
    def group_is_inbox(self) -> bool:
        return not self.group or self.group.lower() == "inbox"

    def render(self, template_name: str, **ctx: object) -> str:
        template = jinja.get_template(template_name)
        return template.render(
            group=self.group,
            group_is_inbox=self.group_is_inbox,
            database_ref=self.database_ref,
            **ctx,
        )

    def run_script(self, script: str) -> str:
        """Run AppleScript source and return its stdout.

        Only the newline osascript appends to the result is removed; leading
        whitespace belongs to the record body.
        """
        try:
            proc = subprocess.run(
                [self._osascript, "-"],
                input=script,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise DocumentStoreError(f"{self._osascript} not available: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise DocumentStoreError(f"AppleScript timed out after {self._timeout:.0f}s") from e

        if proc.returncode != 0:
            logger.debug(f"Failed script:\n{script}")
            raise DocumentStoreError(proc.stderr.strip() or f"osascript exited with {proc.returncode}")
        out = proc.stdout
        return out[:-1] if out.endswith("\n") else out

    def save_bookmark(self, bookmark: Bookmark, annotation: str, save_type: SaveType) -> None:
        script = self.render(
            "save_record.applescript.j2",
            title=bookmark.title,
            url=bookmark.url,
            record_type=bookmark.record_type(save_type).value,
            annotation=annotation,
            tags=list(bookmark.tags),
        )
        self.run_script(script)

    def _lookup(self, title: str, field: str) -> str | None:
        out = self.run_script(self.render("lookup.applescript.j2", title=title, field=field))
        return out or None

    def get_annotation(self, title: str) -> str | None:
        return self._lookup(title, "annotation")

    def get_content(self, title: str) -> str | None:
        return self._lookup(title, "content")

    def set_content(self, title: str, text: str) -> None:
        self.run_script(self.render("set_content.applescript.j2", title=title, content=text))
