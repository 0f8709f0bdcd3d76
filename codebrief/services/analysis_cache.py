"""Single-record cache for Stage 1 analysis results.

The record lives in one JSON file at the workspace root and is valid only
while its ``codebaseHash`` equals the hash of the current formatted tree.
Caching is an optimisation: every failure here is logged and degrades to a
cache miss or a skipped write.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from codebrief.core.types.analysis import AnalysisCacheRecord


def compute_codebase_hash(tree_text: str) -> str:
    """Hash the formatted tree after normalising line endings and trimming."""
    normalized = tree_text.replace("\r\n", "\n").replace("\r", "\n").strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CacheRepository:
    """Persists one ``AnalysisCacheRecord`` per workspace."""

    compute_hash = staticmethod(compute_codebase_hash)

    def __init__(self, cache_path: Path | None):
        self.cache_path = Path(cache_path) if cache_path is not None else None

    def _read_record(self) -> AnalysisCacheRecord | None:
        if self.cache_path is None or not self.cache_path.is_file():
            return None
        try:
            raw = self.cache_path.read_text(encoding="utf-8")
            return AnalysisCacheRecord.model_validate(json.loads(raw))
        except (OSError, json.JSONDecodeError, RecursionError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.cache_path}: {e}")
        except ValidationError as e:
            logger.info(
                f"Ignoring cache file with unexpected shape "
                f"({e.error_count()} validation errors)"
            )
        return None

    def peek(self) -> AnalysisCacheRecord | None:
        """Return the stored record without checking its hash."""
        return self._read_record()

    def get(self, current_hash: str) -> AnalysisCacheRecord | None:
        record = self._read_record()
        if record is None:
            logger.debug("No usable analysis cache")
            return None
        if record.codebase_hash != current_hash:
            logger.info("Analysis cache is stale: codebase structure has changed")
            logger.debug(f"  cached={record.codebase_hash} current={current_hash}")
            return None
        logger.info(f"Using cached analysis from {record.timestamp or 'unknown time'}")
        return record

    def put(self, record: AnalysisCacheRecord) -> None:
        if self.cache_path is None:
            logger.warning("Cannot save analysis cache: no workspace root")
            return

        existing = self._read_record()
        if existing is not None and existing.same_payload(record):
            record = record.model_copy(update={"timestamp": existing.timestamp})

        payload = record.to_json()
        tmp_name: str | None = None
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.cache_path.name}.", dir=self.cache_path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.cache_path)
            tmp_name = None
            logger.info(
                f"Saved analysis cache ({len(record.features)} features, "
                f"{len(record.file_contents)} files read)"
            )
        except OSError as e:
            logger.error(f"Error saving analysis cache: {e}")
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def load(self, current_hash: str) -> AnalysisCacheRecord | None:
        return self.get(current_hash)

    def save(
        self,
        codebase_hash: str,
        detailed_analysis: str,
        features: Sequence[str],
        file_contents: Mapping[str, str] | None = None,
    ) -> None:
        if not detailed_analysis.strip():
            logger.debug("Refusing to cache an empty analysis")
            return
        record = AnalysisCacheRecord(
            codebase_hash=codebase_hash,
            detailed_analysis=detailed_analysis,
            features=list(features),
            file_contents=dict(file_contents or {}),
            timestamp=_utc_timestamp(),
        )
        self.put(record)

    def clear(self) -> bool:
        """Delete the record file. Returns True if a file was removed."""
        if self.cache_path is None:
            return False
        try:
            self.cache_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error clearing analysis cache: {e}")
            return False
        logger.info("Analysis cache cleared")
        return True
