# Overview: Flask extension instances for database, migrations and per-product locks.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .locks import ProductLockRegistry

db = SQLAlchemy()
migrate = Migrate()
product_locks = ProductLockRegistry()
