import pytest
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, MetaData, Table, Text, UniqueConstraint, create_engine

from retailcat.config import Settings
from retailcat.ingest.models import CategoryConfig, RetailerConfig
from retailcat.utils.rate_limit import RateLimiter
from retailcat.utils.retry import RetryPolicy

metadata = MetaData()

catalog_products = Table(
    "catalog_products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("parent_product_id", Text, nullable=False),
    Column("retailer_domain", Text, nullable=False),
    Column("name", Text),
    Column("source", Text),
    Column("operation_type", Text, nullable=False),
    Column("payload", JSON, nullable=False),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
    UniqueConstraint("parent_product_id", "retailer_domain"),
)

stores = Table(
    "stores",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("store_type", Text, nullable=False),
    Column("store_template", Text),
    Column("store_url", Text),
    Column("city", Text),
    Column("state", Text),
    Column("country", Text, nullable=False),
    Column("is_scrapped", Boolean, default=False),
    Column("return_policy", Text),
    Column("tags", JSON),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
    UniqueConstraint("store_type", "name", "country"),
)

store_products = Table(
    "store_products",
    metadata,
    Column("store_id", Integer, ForeignKey("stores.id"), primary_key=True),
    Column("product_id", Integer, ForeignKey("catalog_products.id"), primary_key=True),
)


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def settings(tmp_path):
    return Settings(output_dir=tmp_path / "output", page_delay=0, product_delay=0, max_retries=1)


@pytest.fixture()
def fast_kwargs(settings):
    """Scraper keyword arguments that never sleep."""
    return {"settings": settings, "retry_policy": RetryPolicy(attempts=1), "rate_limiter": RateLimiter(interval=0)}


@pytest.fixture()
def shop_retailer():
    return RetailerConfig(
        slug="lumi",
        name="Lumi Threads",
        domain="lumithreads.com",
        platform="shopify",
        store_url="https://lumithreads.com",
        return_policy_link="https://lumithreads.com/pages/returns",
        tags=["women", "clothing"],
        categories=[CategoryConfig(name="All Products")],
    )


@pytest.fixture()
def database_url(tmp_path):
    """A file-backed SQLite database, usable from executor threads."""
    url = f"sqlite:///{tmp_path / 'catalog.db'}"
    engine = create_engine(url, future=True)
    metadata.create_all(engine)
    engine.dispose()
    return url
