import contextlib
import dataclasses
import io
from pathlib import Path

import fncli
import pytest

from cadence import config, db
from cadence.core.errors import CadenceError
from cadence.lib import ansi

fncli.autodiscover(Path(__file__).parent.parent / "cadence", "cadence")
ansi.use(ansi.PLAIN)


@dataclasses.dataclass
class Result:
    exit_code: int
    stdout: str
    stderr: str


class FnCLIRunner:
    """Dispatch `cadence ...` commands in-process with captured output."""

    def invoke(self, args: list[str]) -> Result:
        out, err = io.StringIO(), io.StringIO()
        code = 0
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            try:
                code = fncli.dispatch(["cadence", *args]) or 0
            except CadenceError as e:
                err.write(f"{e}\n")
                code = 1
            except fncli.UsageError as e:
                err.write(f"{e}\n")
                code = 2
            except SystemExit as e:
                code = e.code if isinstance(e.code, int) else 1
        return Result(code, out.getvalue(), err.getvalue())


@pytest.fixture
def tmp_cadence_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "CADENCE_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "cadence.db")
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    monkeypatch.setattr(config, "LOG_DIR", tmp_path / "logs")
    config._config.reload()
    db.init()
    yield tmp_path
    monkeypatch.undo()
    config._config.reload()
