# Overview: Service wiring; builds the core components over one repository.

from __future__ import annotations

from dataclasses import dataclass

from ..storage.base import Repository
from ..time_utils import utcnow
from .catalog_service import Catalog
from .kiosk_service import KioskCartStore
from .order_service import OrderLedger
from .pricing_service import PricingCalculator
from .reporting_service import ReportingFeed
from .settlement_service import SettlementEngine
from .stock_service import StockLedger


@dataclass
class Services:
    store: Repository
    catalog: Catalog
    stock: StockLedger
    pricing: PricingCalculator
    orders: OrderLedger
    kiosk: KioskCartStore
    settlement: SettlementEngine
    reporting: ReportingFeed


def build_services(store, config, clock=utcnow) -> Services:
    """
    Wire every component to the same repository and clock.

    `config` is any mapping with the Config keys (Flask's app.config or a dict).
    """
    catalog = Catalog(
        store,
        clock=clock,
        default_low_stock_threshold=config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10),
    )
    stock = StockLedger(store, clock=clock)
    pricing = PricingCalculator(store)
    reporting = ReportingFeed(store, clock=clock)
    orders = OrderLedger(
        store,
        pricing,
        stock,
        clock=clock,
        order_number_pad=config.get("ORDER_NUMBER_PAD", 6),
    )
    kiosk = KioskCartStore(
        store,
        orders,
        clock=clock,
        ttl_minutes=config.get("KIOSK_SESSION_TTL_MINUTES", 30),
        sellable_categories=config.get("KIOSK_SELLABLE_CATEGORIES", ("beverage", "food")),
        default_customer_name=config.get("KIOSK_DEFAULT_CUSTOMER_NAME", "Kiosk Customer"),
    )
    settlement = SettlementEngine(store, stock, reporting, clock=clock)
    return Services(
        store=store,
        catalog=catalog,
        stock=stock,
        pricing=pricing,
        orders=orders,
        kiosk=kiosk,
        settlement=settlement,
        reporting=reporting,
    )
