from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..models.db_models import User
from ..models.session import Session

QUIZZES = "quizzes"
SUBMISSIONS = "submissions"
USERS = "users"

# (field, operator, value); operator is one of FILTER_OPERATORS.
# field may be a tuple of names, matching when any of them matches
# (current and legacy spelling of the same field).
Filter = Tuple[Union[str, Tuple[str, ...]], str, Any]
FILTER_OPERATORS = ("==", "!=", "<", "<=", ">", ">=")

AuthStateListener = Callable[[Optional[Session]], None]


class IPersistenceGateway(ABC):
    """
    Interface for the document store.

    Every method raises PersistenceError when the store call fails.
    Documents are plain dicts keyed by "_id".
    """
    @abstractmethod
    def insert(self, collection: str, document: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def get_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def query(self, collection: str, filters: List[Filter]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Deleting a missing document is not an error."""
        pass

    @abstractmethod
    def increment_field(self, collection: str, doc_id: str, field: str, delta: int = 1) -> None:
        pass

    def ping(self) -> bool:
        return True


class IIdentityProvider(ABC):
    """Interface for sign-up / sign-in and the auth-state stream."""
    @abstractmethod
    def sign_up(self, email: str, password: str, display_name: str = "") -> Session:
        pass

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Session:
        pass

    @abstractmethod
    def sign_in_with_provider(self, provider: str, profile: Dict[str, Any]) -> Session:
        pass

    @abstractmethod
    def sign_out(self, session: Optional[Session]) -> None:
        pass

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        pass

    @abstractmethod
    def reset_password(self, token: str, new_password: str) -> None:
        pass

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def on_auth_state_change(self, listener: AuthStateListener) -> Callable[[], None]:
        """Subscribe to session changes. Returns the unsubscribe callable."""
        pass
