# controlboard/models/__init__.py
from controlboard.db.base import Base  # noqa: F401

from . import team       # noqa: F401
from . import control    # noqa: F401
from . import kpi        # noqa: F401
from . import execution  # noqa: F401
