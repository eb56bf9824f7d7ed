from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from ._core_base import *  # noqa: F401,F403
from ._core_constraints import *  # noqa: F401,F403
from ._core_platforms import *  # noqa: F401,F403
from ._core_assembly import *  # noqa: F401,F403
from ._core_identity import *  # noqa: F401,F403
from ._core_references import *  # noqa: F401,F403
from ._core_response import *  # noqa: F401,F403
from ._core_settings import *  # noqa: F401,F403
from ._core_graph import *  # noqa: F401,F403
from ._core_render import *  # noqa: F401,F403
from ._core_output import *  # noqa: F401,F403
from ._core_provider import *  # noqa: F401,F403
from ._core_sync import *  # noqa: F401,F403
