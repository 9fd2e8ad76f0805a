from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from tableside.domain.models import TableSession

class ITableApi(ABC):
    """The slice of the restaurant REST API the customer core calls into."""

    @abstractmethod
    def resolve_token(self, slug: str, token: str) -> TableSession:
        pass

    @abstractmethod
    def start_guest_session(self, slug: str, table_number: str) -> TableSession:
        pass

    @abstractmethod
    def create_order(self, slug: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_table_orders(self, slug: str, table_session_id: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def call_waiter(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        pass
