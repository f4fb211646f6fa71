# Overview: Pytest coverage for the Flask CLI command groups.

from sqlalchemy import update

from laundrypos.models import Customer, Order, Shop


class TestShopCommands:
    def test_create_and_list_shops(self, app, db_session):
        runner = app.test_cli_runner()

        created = runner.invoke(args=["shops", "create", "--name", "Bubbles", "--phone", "+254700111222"])
        listed = runner.invoke(args=["shops", "list"])

        assert created.exit_code == 0
        assert "PASS Created shop: Bubbles" in created.output
        assert "Bubbles" in listed.output
        assert db_session.query(Shop).filter_by(name="Bubbles").one().subscription_status == "ACTIVE"

    def test_set_status(self, app, db_session, shop_a):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["shops", "set-status", str(shop_a.id), "grace", "--reason", "Invoice overdue"])

        assert result.exit_code == 0
        db_session.expire_all()
        shop = db_session.get(Shop, shop_a.id)
        assert shop.subscription_status == "GRACE"
        assert shop.suspension_reason == "Invoice overdue"

    def test_set_status_rejects_unknown_value(self, app, db_session, shop_a):
        result = app.test_cli_runner().invoke(args=["shops", "set-status", str(shop_a.id), "TRIAL"])
        assert result.exit_code != 0

    def test_set_status_unknown_shop(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["shops", "set-status", "999999", "ACTIVE"])
        assert "FAIL Shop ID 999999 not found" in result.output


class TestCustomerCommands:
    def test_create_customer(self, app, db_session, shop_a):
        result = app.test_cli_runner().invoke(
            args=["customers", "create", "--shop-id", str(shop_a.id), "--name", "Amina", "--phone", "+254733000000"]
        )

        assert result.exit_code == 0
        assert db_session.query(Customer).filter_by(shop_id=shop_a.id, name="Amina").count() == 1


class TestLedgerCommands:
    def test_reconcile_clean(self, app, db_session, owner_a, customer_a, make_order):
        make_order(owner_a, customer_a, initial_cents=500)

        result = app.test_cli_runner().invoke(args=["ledger", "reconcile"])

        assert result.exit_code == 0
        assert "PASS Ledger is consistent." in result.output

    def test_reconcile_reports_drift(self, app, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, initial_cents=500)
        db_session.execute(update(Order).where(Order.id == order.id).values(amount_paid_cents=700, balance_cents=14300))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "reconcile", "--shop-id", str(owner_a.shop_id)])

        assert result.exit_code == 1
        assert f"order {order.id}" in result.output
        assert "payments=500" in result.output
