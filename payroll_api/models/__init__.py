import importlib

MODEL_MODULES = (
    "user",
    "security",
    "employee",
    "attendance",
    "payroll.ledger",
    "payroll.daily",
)


def load_all():
    """Import every model module so db.metadata knows all tables (create_all, alembic autogenerate)."""
    for name in MODEL_MODULES:
        importlib.import_module(f"{__name__}.{name}")
