import allure
from click.testing import CliRunner

from snfs_defrag import __version__
from snfs_defrag.main import snfs_defrag

pytestmark = [
    allure.epic("Defrag Automation"),
    allure.feature("CLI Ops"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(snfs_defrag, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
