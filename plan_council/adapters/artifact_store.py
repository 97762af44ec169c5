"""File storage for session transcripts and winning-plan documents."""

from datetime import datetime
from pathlib import Path


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 timestamp safe for file names (``:`` and ``.`` become ``-``)."""
    return moment.isoformat().replace(":", "-").replace(".", "-")


class FileArtifactWriter:
    """
    Writes session artifacts into an output directory.

    Path stems are unique per writer instance: a stem that was already issued,
    or whose files already exist on disk, gets a ``-2``, ``-3``, ... suffix.
    """

    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)
        self._issued: set[str] = set()

    def allocate_paths(self, started_at: datetime) -> tuple[str, str]:
        """
        Reserve the transcript and winning-plan paths for a session.

        Args:
            started_at: Session start time

        Returns:
            Tuple of (transcript_path, winning_plan_path)
        """
        base = format_timestamp(started_at)
        stem = base
        suffix = 1
        while stem in self._issued or self._exists(stem):
            suffix += 1
            stem = f"{base}-{suffix}"
        self._issued.add(stem)
        return (
            str(self.output_dir / f"transcript-{stem}.md"),
            str(self.output_dir / f"winning_plan-{stem}.md"),
        )

    def _exists(self, stem: str) -> bool:
        return (self.output_dir / f"transcript-{stem}.md").exists() or (
            self.output_dir / f"winning_plan-{stem}.md"
        ).exists()

    def write(self, path: str, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(content)
