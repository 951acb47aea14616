# tools.py
import asyncio
import csv
from pathlib import Path
from typing import List, Optional, Sequence, TypeVar

from browsers import BrowserService
from models import MatchStatus, ProfileWithLinkedInProfile, ProfileWithQuery, UserProfile
from prompts import LinkedInPrompts, classify_response

T = TypeVar("T")

OUTPUT_HEADERS = ["email", "firstName", "lastName", "linkedInProfile"]


# ---------- CSV in ----------
def read_profiles_csv(path: str) -> List[UserProfile]:
    """
    Read `email,first_name,last_name` rows, skipping the header row and blank lines.
    A line of empty cells (e.g. " , , ") still yields a profile with empty fields.
    Short rows get empty strings for the missing columns; extra columns are ignored.
    """
    p = Path(path)
    profiles: List[UserProfile] = []
    with p.open("r", encoding="utf-8", newline="") as f:
        rdr = csv.reader(f)
        next(rdr, None)  # header
        for row in rdr:
            if not row or (len(row) == 1 and not row[0].strip()):
                continue
            email, first_name, last_name = (list(row) + ["", "", ""])[:3]
            profiles.append(
                UserProfile(
                    email=email.strip(),
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                )
            )
    return profiles


def generate_profiles_with_queries(profiles: Sequence[UserProfile]) -> List[ProfileWithQuery]:
    return [
        ProfileWithQuery(**p.model_dump(), query=LinkedInPrompts.build_search_url(p))
        for p in profiles
    ]


# ---------- batching helper ----------
def chunk_list(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


# ---------- remote search ----------
async def search_for_linkedin_profile(
    service: BrowserService,
    session_id: str,
    window_id: str,
    profile: ProfileWithQuery,
) -> Optional[str]:
    """
    Load the profile's Google query in the window and ask the page for the LinkedIn URL.
    Returns the raw model response ('Error' included), or None if the service call failed.
    """
    try:
        await service.load_url(session_id, window_id, profile.query)
        print(f"🔍 Searching for {profile.first_name} {profile.last_name} {profile.email} on LinkedIn")
        return await service.page_query(session_id, window_id, LinkedInPrompts.PROFILE_URL_QUERY)
    except Exception as e:
        print(f"❌ Error querying the page for profile {profile.email}: {e}")
        return None


async def run_sequential_batch(
    service: BrowserService,
    profiles: Sequence[ProfileWithQuery],
    batch_index: int,
) -> List[ProfileWithLinkedInProfile]:
    """
    Run one batch in its own session and window, one profile at a time.
    The session is terminated on every path once it has been created.
    """
    print(f"🚀 Running batch {batch_index}")
    try:
        session_id = await service.create_session()
    except Exception as e:
        print(f"❌ Error creating session for batch {batch_index}: {e}")
        return []

    results: List[ProfileWithLinkedInProfile] = []
    try:
        try:
            window_id = await service.create_window(session_id)
        except Exception as e:
            print(f"❌ Error creating window for batch {batch_index}: {e}")
            return []

        print(f"✅ Created session and window for batch {batch_index}")

        # one window can only show one page at a time
        for profile in profiles:
            linkedin_profile = await search_for_linkedin_profile(service, session_id, window_id, profile)
            if linkedin_profile:
                results.append(
                    ProfileWithLinkedInProfile(**profile.model_dump(), linkedin_profile=linkedin_profile)
                )
    finally:
        try:
            await service.terminate_session(session_id)
        except Exception as e:
            print(f"⚠️  Error terminating session for batch {batch_index}: {e}")

    return results


async def run_batches_in_parallel(
    service: BrowserService,
    batches: Sequence[Sequence[ProfileWithQuery]],
) -> List[ProfileWithLinkedInProfile]:
    tasks = [run_sequential_batch(service, batch, index) for index, batch in enumerate(batches)]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    out: List[ProfileWithLinkedInProfile] = []
    for index, result in enumerate(results):
        if isinstance(result, BaseException):
            print(f"❌ Batch {index} failed: {result}")
            continue
        out.extend(result)
    return out


def filter_found(profiles: Sequence[ProfileWithLinkedInProfile]) -> List[ProfileWithLinkedInProfile]:
    return [p for p in profiles if classify_response(p.linkedin_profile) is MatchStatus.FOUND]


# ---------- CSV out ----------
def write_profiles_csv(profiles: Sequence[ProfileWithLinkedInProfile], path: str) -> str:
    """Overwrite `path` with a header row plus one quoted row per enriched profile."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.writer(f, lineterminator="\n")
        w.writerow(OUTPUT_HEADERS)
        for profile in profiles:
            w.writerow([profile.email, profile.first_name, profile.last_name, profile.linkedin_profile])

    return f"Saved {len(profiles)} profiles to {p}"
