"""Directory user profile."""

from sqlmodel import SQLModel


class UserProfile(SQLModel):
    """A user as returned by the directory.

    Attributes:
        id: Directory object id.
        display_name: Human-readable name.
        user_principal_name: Sign-in name, also used as the mail address
            for calendar invitations.
    """
    id: str
    display_name: str | None = None
    user_principal_name: str | None = None

    def label(self) -> str:
        """Display form used in exports: "Name (upn)"."""
        name = self.display_name or self.id
        if self.user_principal_name:
            return f"{name} ({self.user_principal_name})"
        return name
