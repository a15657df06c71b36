from .schemas import *  # noqa: F401,F403
from .schemas import __all__  # noqa: F401
