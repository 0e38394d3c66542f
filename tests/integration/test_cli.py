import json
import pytest
from rich.console import Console
from typer.testing import CliRunner

from office_bu import cli
from office_bu.config.settings import AppConfig

runner = CliRunner()


@pytest.fixture
def service(tmp_path, mocker):
    mocker.patch("office_bu.cli.configure_logging")
    # wide enough that tables never wrap cell text
    mocker.patch("office_bu.cli.console", Console(width=200))
    service = cli.build_service(AppConfig(db_path=tmp_path / "cli.db"))
    cli.state.service = service
    yield service
    service.repository.store.db.close()
    cli.state.service = None
    cli.state.verbose = False


def invoke(*args, input=None):
    return runner.invoke(cli.app, list(args), input=input)


@pytest.mark.integration
class TestCli:

    def test_add_purchase(self, service):
        result = invoke("add", "tea", "-q", "2", "-p", "10", "--by", "Alice", "-n", "chai")

        assert result.exit_code == 0
        assert "Added tea" in result.output
        txn = service.get_transactions()[0]
        assert txn.amount == 20
        assert txn.note == "chai"

    def test_add_payment_without_quantity(self, service):
        result = invoke("add", "payment", "-p", "150", "--by", "Bob")

        assert result.exit_code == 0
        assert service.get_transactions()[0].quantity == 1

    def test_invalid_input_exits_with_error(self, service):
        result = invoke("add", "juice", "-p", "10", "--by", "Alice")

        assert result.exit_code == 1
        assert "Unknown type" in result.output
        assert service.get_transactions() == []

    def test_list_and_search(self, service):
        invoke("add", "tea", "-q", "2", "-p", "10", "--by", "Alice")
        invoke("add", "coffee", "-p", "30", "--by", "Bob")

        result = invoke("list", "--search", "bob")

        assert result.exit_code == 0
        assert "Bob" in result.output
        assert "Alice" not in result.output

    def test_empty_list(self, service):
        result = invoke("list")

        assert "No transactions found" in result.output

    def test_edit_and_delete(self, service):
        invoke("add", "tea", "-q", "2", "-p", "10", "--by", "Alice")
        txn_id = service.get_transactions()[0].id

        edited = invoke("edit", str(txn_id), "-q", "3")
        deleted = invoke("delete", str(txn_id), "--yes")

        assert edited.exit_code == 0
        assert "Updated 1 transaction(s)" in edited.output
        assert deleted.exit_code == 0
        assert service.get_transactions() == []

    def test_delete_asks_for_confirmation(self, service):
        invoke("add", "tea", "-q", "1", "-p", "10", "--by", "Alice")
        txn_id = service.get_transactions()[0].id

        result = invoke("delete", str(txn_id), input="n\n")

        assert result.exit_code == 1
        assert len(service.get_transactions()) == 1

    def test_categorize(self, service):
        invoke("add", "tea", "-q", "1", "-p", "10", "--by", "Alice")
        txn_id = service.get_transactions()[0].id

        result = invoke("categorize", str(txn_id), "--type", "coffee")

        assert result.exit_code == 0
        assert service.get_transactions()[0].type.value == "coffee"

    def test_summary(self, service):
        invoke("add", "tea", "-q", "2", "-p", "10", "--by", "Alice")
        invoke("add", "payment", "-p", "5", "--by", "Alice")

        result = invoke("summary")

        assert result.exit_code == 0
        assert "15.00" in result.output
        assert "By Person" in result.output

    def test_summary_for_one_user_skips_people_table(self, service):
        invoke("add", "tea", "-q", "1", "-p", "10", "--by", "Alice")
        invoke("add", "coffee", "-q", "1", "-p", "30", "--by", "Bob")

        result = invoke("summary", "--by", "Bob")

        assert result.exit_code == 0
        assert "Balance for Bob" in result.output
        assert "By Person" not in result.output

    def test_configure_and_sync_without_webhook(self, service):
        result = invoke("sync")

        assert result.exit_code == 0
        assert "no webhook configured" in result.output

        result = invoke("configure", "--spreadsheet-id", "sheet-1")
        assert result.exit_code == 0
        assert service.state.sync.spreadsheet_id == "sheet-1"

    def test_theme(self, service):
        assert invoke("theme", "ocean").exit_code == 0
        assert service.state.theme.value == "ocean"
        assert invoke("theme", "neon").exit_code == 1

    def test_import_csv(self, service, tmp_path):
        path = tmp_path / "in.csv"
        path.write_text("Type,Quantity,Price,User,Note\ntea,2,10,Alice,chai\npayment,,50,Bob,\n", encoding="utf-8")

        result = invoke("import", str(path))

        assert result.exit_code == 0
        assert [t.user for t in service.get_transactions()] == ["Alice", "Bob"]

    def test_import_rejects_whole_file_on_bad_row(self, service, tmp_path):
        path = tmp_path / "in.csv"
        path.write_text("type,quantity,price,user\ntea,2,10,Alice\ntea,2,10,\n", encoding="utf-8")

        result = invoke("import", str(path))

        assert result.exit_code == 1
        assert "Row 3" in result.output
        assert service.get_transactions() == []

    def test_backup_restore_and_export(self, service, tmp_path):
        invoke("add", "tea", "-q", "2", "-p", "10", "--by", "Alice")
        before = service.get_transactions()

        backup = invoke("backup", "--dir", str(tmp_path))
        backup_file = next(tmp_path.glob("office-bu-backup-*.json"))
        invoke("clear", "--yes")
        restored = invoke("restore", str(backup_file), "--yes")
        exported = invoke("export", "--dir", str(tmp_path))

        assert backup.exit_code == 0
        assert json.loads(backup_file.read_text(encoding="utf-8"))["transactions"][0]["user"] == "Alice"
        assert restored.exit_code == 0
        assert service.get_transactions() == before
        assert exported.exit_code == 0
        assert next(tmp_path.glob("office-bu-export-*.csv")).read_text(encoding="utf-8").startswith("ID,Date")
