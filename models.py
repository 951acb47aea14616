# models.py
from enum import Enum
from typing import List, Optional, TypedDict
from pydantic import BaseModel, ConfigDict, Field

# Profiles per session. 1 runs every profile in its own session, fully in parallel;
# 2 makes batches of two profiles that each run sequentially in one session.
BATCH_SIZE = 1

DEFAULT_INPUT_CSV = "data/profiles.csv"
DEFAULT_OUTPUT_CSV = "output/profiles_with_linked_in_profiles.csv"


class EnrichConfig(BaseModel):
    # files
    input_csv: str = DEFAULT_INPUT_CSV
    output_csv: str = DEFAULT_OUTPUT_CSV
    # engine/runtime
    batch_size: int = Field(default=BATCH_SIZE, ge=1)
    backend: str = "airtop"          # "airtop" | "playwright"
    browser: str = "chromium"        # playwright backend only
    model: str = "gemini-2.5-flash"  # playwright backend only
    found_only: bool = False         # drop rows whose response is not a profile URL


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str
    email: str


class ProfileWithQuery(UserProfile):
    query: str


class ProfileWithLinkedInProfile(ProfileWithQuery):
    linkedin_profile: str


class MatchStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


class GraphState(TypedDict, total=False):
    config: EnrichConfig
    profiles: List[UserProfile]                    # as read from the input CSV
    queries: List[ProfileWithQuery]                # profiles + Google search URL
    batches: List[List[ProfileWithQuery]]          # one session per batch
    results: List[ProfileWithLinkedInProfile]      # enriched rows, input order
    saved: Optional[str]                           # path written by save node
