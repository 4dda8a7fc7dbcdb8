from pydantic import BaseModel


class Session(BaseModel):
    """
    The acting user, passed explicitly to every operation that needs it.
    """
    user_id: str
    email: str = ""
    display_name: str = ""
