"""Filesystem archive for raw API-Football responses.

Saves and loads gzip-compressed JSON payloads organized by entity and id
so a bad import can be replayed or inspected without spending API quota::

    base_dir/
      fixtures/
        {fixture_id}/
          detail.json.gz
          summary.json.gz
      teams/
        {league_id}-{season}.json.gz
      leagues/
        {league_id}.json.gz
"""

import gzip
import json
from pathlib import Path


class PayloadArchive:
    """Gzipped JSON save/load/exists filesystem layer.

    Usage::

        archive = PayloadArchive("data/raw")
        path = archive.save(payload, kind="fixture_detail", key=1035037)
        payload = archive.load(kind="fixture_detail", key=1035037)
    """

    # Payload kind -> path template relative to base_dir
    KINDS: dict[str, str] = {
        "fixture_detail": "fixtures/{key}/detail.json.gz",
        "fixture_summary": "fixtures/{key}/summary.json.gz",
        "teams": "teams/{key}.json.gz",
        "league": "leagues/{key}.json.gz",
    }

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def save(self, payload, kind: str, key) -> Path:
        """Write a JSON-serializable payload to disk.

        Raises:
            ValueError: If kind is not recognized.
        """
        file_path = self._build_path(kind, key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        raw = json.dumps(payload, ensure_ascii=False, default=str)
        file_path.write_bytes(gzip.compress(raw.encode("utf-8")))
        return file_path

    def load(self, kind: str, key):
        """Load a payload previously written by ``save``.

        Raises:
            FileNotFoundError: If nothing was archived for this kind/key.
            ValueError: If kind is not recognized.
        """
        file_path = self._build_path(kind, key)
        if not file_path.exists():
            raise FileNotFoundError(
                f"No archived payload for kind={kind!r}, key={key}: {file_path}"
            )
        return json.loads(gzip.decompress(file_path.read_bytes()).decode("utf-8"))

    def exists(self, kind: str, key) -> bool:
        """Check whether a payload has been archived."""
        return self._build_path(kind, key).exists()

    def _build_path(self, kind: str, key) -> Path:
        if kind not in self.KINDS:
            raise ValueError(
                f"Unknown payload kind {kind!r}. "
                f"Valid kinds: {list(self.KINDS.keys())}"
            )
        return self.base_dir / self.KINDS[kind].format(key=key)
