"""
Post-install SQL scripts.

Scripts run in file name order after every file of a run imported
cleanly. {{DATABASE}} and {{SCHEMA}} are substituted first, then each
script is split into batches on lines that contain only GO.
"""

import re
from pathlib import Path

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from pipeload.errors import PostInstallError
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

GO_SEPARATOR = re.compile(r"^[ \t]*GO[ \t]*;?[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)


def render_script(script: str, *, database: str, schema: str | None) -> str:
    """Replace the {{DATABASE}} and {{SCHEMA}} placeholders."""
    return script.replace("{{DATABASE}}", database).replace("{{SCHEMA}}", schema or "")


def split_batches(script: str) -> list[str]:
    """Split a script on GO lines, dropping empty batches."""
    return [batch.strip() for batch in GO_SEPARATOR.split(script) if batch.strip()]


def discover_scripts(scripts_dir: Path) -> list[Path]:
    """List *.sql files in name order."""
    if not scripts_dir.is_dir():
        msg = f"Post-install scripts folder not found: {scripts_dir}"
        raise FileNotFoundError(msg)
    return sorted(scripts_dir.glob("*.sql"))


def run_post_install_scripts(
    engine: Engine,
    scripts_dir: Path,
    *,
    database: str,
    schema: str | None,
) -> list[Path]:
    """
    Execute every post-install script.

    Each script runs in its own transaction; the first failing batch
    stops the run.

    Args:
        engine: Destination engine.
        scripts_dir: Folder with *.sql files.
        database: Value for {{DATABASE}}.
        schema: Value for {{SCHEMA}}.

    Returns:
        Scripts that were executed.

    Raises:
        PostInstallError: If a batch fails.
    """
    executed: list[Path] = []
    for script_path in discover_scripts(scripts_dir):
        script = render_script(
            script_path.read_text(encoding="utf-8-sig"),
            database=database,
            schema=schema,
        )
        batches = split_batches(script)
        log.info("Running post-install script", script=script_path.name, batches=len(batches))

        with engine.begin() as conn:
            for number, batch in enumerate(batches, start=1):
                try:
                    conn.exec_driver_sql(batch)
                except SQLAlchemyError as e:
                    log.error(
                        "Post-install batch failed",
                        script=script_path.name,
                        batch=number,
                        error=str(e),
                    )
                    raise PostInstallError(script_path.name, number, e) from e

        executed.append(script_path)

    return executed
