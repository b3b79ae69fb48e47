#!/usr/bin/env python3
"""
Settle orders from the command line.

Usage:
    python3 scripts/settle.py init-db
    python3 scripts/settle.py seed-demo
    python3 scripts/settle.py settle request.json [--fake-provider]
    python3 scripts/settle.py show ESP000001

The database defaults to $DATABASE_URL, else a local SQLite file.  Policy
comes from settlement_config (packaged defaults or $SETTLEMENT_CONFIG).
When the default provider account has no credentials, or --fake-provider
is given, billing artifacts are minted by the in-memory provider.
"""

import argparse
import json
import os
import sys
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEFAULT_DB_URL = "sqlite:///settlement.db"
DEMO_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def cmd_init_db(args) -> int:
    from settlement_kernel.db.engine import create_tables

    create_tables()
    print("  tables created")
    return 0


def cmd_seed_demo(args) -> int:
    from settlement_kernel.db.engine import session_scope
    from settlement_kernel.models import (
        BankAccount,
        CardFeeConfig,
        Customer,
        Employee,
        Product,
        RawMaterial,
        Seller,
    )

    with session_scope() as session:
        seller = Seller(name="Demo Seller", commission_rate=Decimal("5"))
        session.add(seller)
        session.flush()
        products = [
            Product(
                name="Espeto de Carne",
                price_wholesale=Decimal("10.00"),
                price_retail=Decimal("12.00"),
                is_on_promotion=True,
                promotional_price=Decimal("8.00"),
                current_stock=500,
            ),
            Product(
                name="Espeto de Frango",
                price_wholesale=Decimal("8.00"),
                price_retail=Decimal("9.50"),
                bulk_discount_min_qty=50,
                bulk_discount_price=Decimal("7.20"),
                current_stock=500,
            ),
        ]
        material = RawMaterial(name="Carvao 5kg", price_wholesale=Decimal("25.00"), unit="UN")
        customer = Customer(
            name="Bar do Demo",
            cpf_cnpj="12.345.678/0001-90",
            email="financeiro@demo.invalid",
            credit_limit=Decimal("5000.00"),
            available_credit=Decimal("5000.00"),
            seller_id=seller.id,
            payment_terms_days=7,
        )
        employee = Employee(name="Demo Employee", cpf="123.456.789-01", credit_limit=Decimal("300.00"))
        bank = BankAccount(name="Caixa Principal", balance=Decimal("0"), provider_account="GENUINO")
        session.add_all(
            [
                *products,
                material,
                customer,
                employee,
                bank,
                CardFeeConfig(card_type="DEBIT", fee_percentage=Decimal("0.9")),
                CardFeeConfig(card_type="CREDIT", fee_percentage=Decimal("3.24")),
            ]
        )
        session.flush()
        _print_json(
            {
                "sellerId": seller.id,
                "productIds": [p.id for p in products],
                "rawMaterialId": material.id,
                "customerId": customer.id,
                "employeeId": employee.id,
                "bankAccountId": bank.id,
                "actorId": DEMO_ACTOR_ID,
            }
        )
    return 0


def _billing_provider(policy, rules, fake: bool):
    from settlement_services import CoraBillingClient, InMemoryBillingProvider, InMemoryInstantPaymentLookup

    account = policy.provider.account(rules.default_provider_account)
    if fake or account is None or not account.is_configured:
        print("  using in-memory billing provider", file=sys.stderr)
        return InMemoryBillingProvider(), InMemoryInstantPaymentLookup(rules)
    client = CoraBillingClient(policy.provider, rules=rules)
    return client, client


def cmd_settle(args) -> int:
    from settlement_config import build_settlement_rules, get_active_policy
    from settlement_kernel.db.engine import get_session_factory
    from settlement_kernel.domain.dtos import SettlementRequest
    from settlement_kernel.exceptions import ValidationError
    from settlement_kernel.services.pipeline import SettlementPipeline
    from settlement_services import LoggingNotificationDispatcher

    payload = json.loads(Path(args.request).read_text())
    payload.setdefault("actorId", str(DEMO_ACTOR_ID))
    payload.setdefault("idempotencyKey", args.idempotency_key)
    try:
        request = SettlementRequest.from_dict(payload)
    except ValidationError as exc:
        _print_json({"error": str(exc), "code": exc.code, "details": exc.to_details(), "status": 400})
        return 1

    policy = get_active_policy()
    rules = build_settlement_rules(policy)
    provider, lookup = _billing_provider(policy, rules, args.fake_provider)
    pipeline = SettlementPipeline(
        get_session_factory(),
        rules=rules,
        billing_provider=provider,
        instant_payment_lookup=lookup,
        notifier=LoggingNotificationDispatcher(),
    )
    result = pipeline.settle(request)
    _print_json(result.to_dict())
    return 0 if result.ok else 1


def cmd_show(args) -> int:
    from settlement_kernel.db.engine import session_scope
    from settlement_kernel.selectors import OrderSelector

    with session_scope() as session:
        detail = OrderSelector(session).detail(args.order_number)
    if detail is None:
        print(f"  ERROR: order {args.order_number} not found", file=sys.stderr)
        return 1
    _print_json(asdict(detail))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Settle orders against the settlement kernel.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/settle.py init-db\n"
            "  python3 scripts/settle.py settle request.json --fake-provider\n"
            "  python3 scripts/settle.py show ESP000001\n"
        ),
    )
    parser.add_argument(
        "--db-url", type=str, default=os.environ.get("DATABASE_URL", DEFAULT_DB_URL),
        help=f"Database URL (default: $DATABASE_URL or {DEFAULT_DB_URL})",
    )
    parser.add_argument(
        "--log-level", type=str, default="WARNING",
        help="Log level for the JSON log stream on stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables")
    sub.add_parser("seed-demo", help="Insert a demo catalog, payers and bank account")

    settle = sub.add_parser("settle", help="Settle the order described by a JSON request file")
    settle.add_argument("request", help="Path to the request JSON")
    settle.add_argument("--fake-provider", action="store_true", help="Mint artifacts in memory")
    settle.add_argument("--idempotency-key", default=None, help="Replay-safe key for this request")

    show = sub.add_parser("show", help="Show an order and everything its settlement wrote")
    show.add_argument("order_number")

    args = parser.parse_args()

    from settlement_kernel.db.engine import init_engine_from_url
    from settlement_kernel.db.immutability import register_immutability_listeners
    from settlement_kernel.logging_config import configure_logging

    configure_logging(level=args.log_level.upper(), stream=sys.stderr)
    try:
        init_engine_from_url(args.db_url, echo=False)
    except Exception as exc:
        print(f"  ERROR: Cannot connect to database: {exc}", file=sys.stderr)
        return 1
    register_immutability_listeners()

    handlers = {
        "init-db": cmd_init_db,
        "seed-demo": cmd_seed_demo,
        "settle": cmd_settle,
        "show": cmd_show,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
