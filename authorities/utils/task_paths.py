from pathlib import Path
from typing import Optional


class TaskPaths:
    """
    Resolves log file locations for long-lived processes and harvest runs.

    Layout:
    - Process logs: <logs_root>/<name>.log
    - Per-run logs: <logs_root>/runs/<run_id>/<name>.log
    """

    def __init__(self, logs_root: str = "logs", project_root: Optional[Path] = None):
        if project_root:
            self.logs_root = Path(project_root) / logs_root
        else:
            self.logs_root = Path(logs_root)

    def get_log_path(self, run_id: str | None = None, name: str = "app") -> str:
        """
        Get the log file path for `name`, creating its parent directory.

        Args:
            run_id: Optional run identifier for per-run logging
            name: Log file name (without .log extension)

        Returns:
            Full path to log file as string
        """
        if run_id:
            p = self.logs_root / "runs" / run_id / f"{name}.log"
        else:
            p = self.logs_root / f"{name}.log"
        p.parent.mkdir(parents=True, exist_ok=True)
        return str(p)
