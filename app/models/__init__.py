# Import all models to ensure they are registered with SQLAlchemy
from . import booking

__all__ = ["booking"]
