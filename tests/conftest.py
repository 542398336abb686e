import dataclasses
import io
from contextlib import redirect_stderr, redirect_stdout

import pytest

from habitual import cli, config, db


@pytest.fixture
def tmp_habitual_dir(tmp_path, monkeypatch):
    """Point every path at a throwaway directory and build the schema there."""
    monkeypatch.setattr(config, "HABITUAL_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "store.db")
    monkeypatch.setattr(config, "LOG_PATH", tmp_path / "habitual.log")
    monkeypatch.setattr(config, "BACKUP_DIR", tmp_path / "backups")
    db.init()
    return tmp_path


@dataclasses.dataclass
class Result:
    exit_code: int
    stdout: str
    stderr: str


class FnCLIRunner:
    def invoke(self, args: list[str]) -> Result:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            try:
                code = cli.run(args)
            except SystemExit as e:
                code = e.code if isinstance(e.code, int) else 1
        return Result(exit_code=code or 0, stdout=out.getvalue(), stderr=err.getvalue())
