from datetime import datetime
from typing import List, Optional, Protocol

from .models import Task


class SectionFormatter(Protocol):
    def render_section(self, tasks: List[Task], now: Optional[datetime] = None) -> str:
        ...
