from autoparts.extensions import db
from autoparts.models import Discount, InventoryItem, User


def test_init_and_seed(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "PASS Created user: admin@autoparts.local" in result.output
    assert db.session.query(User).count() == 2

    result = runner.invoke(args=["system", "init"])
    assert "already exists" in result.output
    assert db.session.query(User).count() == 2

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert db.session.query(InventoryItem).count() == 6
    assert db.session.query(Discount).filter_by(code="WELCOME10").one().discount_value == 1000

    result = runner.invoke(args=["inventory", "low-stock"])
    assert "2 item(s) need restocking" in result.output
    assert "AL-3005" in result.output
    assert "AF-2003" in result.output


def test_seed_requires_admin(app):
    result = app.test_cli_runner().invoke(args=["system", "seed"])
    assert "No admin user exists" in result.output
    assert db.session.query(InventoryItem).count() == 0


def test_held_list_empty(app):
    result = app.test_cli_runner().invoke(args=["held", "list"])
    assert result.exit_code == 0
    assert "No held orders." in result.output
