"""Profile directory exports."""

from .models import Profile  # noqa: F401
from .repo import InMemoryProfileStore, ProfileDirectory, ProfileRepository  # noqa: F401
