"""
Staffing Assignment

Seeds a roster for every store from a per-store generator (hash of the
store id plus the global seed): 6-10 staff with at least two chefs, two
packers and one supervisor, shuffled deterministically.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from grovyn_core.config import Settings, get_settings
from grovyn_core.data.models import Store
from grovyn_core.data.random import SeededRandom, derive_seed
from grovyn_core.exceptions import EntityNotFoundError

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    """Kitchen roles"""
    CHEF = "CHEF"
    PACKER = "PACKER"
    SUPERVISOR = "SUPERVISOR"


class ExperienceTier(str, Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


MINIMUM_ROLES = (Role.CHEF, Role.CHEF, Role.PACKER, Role.PACKER, Role.SUPERVISOR)
EXTRA_ROLE_POOL = (Role.CHEF, Role.PACKER, Role.PACKER, Role.SUPERVISOR)  # biased towards packers
EXPERIENCE_TIERS = (ExperienceTier.JUNIOR, ExperienceTier.MID, ExperienceTier.SENIOR)
STAFF_COUNT_RANGE = (6, 10)
CAPACITY_RANGE = (0.8, 1.2)


@dataclass(frozen=True)
class StaffMember:
    staff_id: str
    store_id: str
    role: Role
    experience: ExperienceTier
    capacity_score: float


class StaffRoster:
    """Staff per store, in store order"""

    def __init__(self, staff_by_store: Dict[str, List[StaffMember]]):
        self._by_store = {store_id: tuple(staff) for store_id, staff in staff_by_store.items()}

    @property
    def store_ids(self) -> List[str]:
        return list(self._by_store)

    def staff_for(self, store_id: str) -> Tuple[StaffMember, ...]:
        if store_id not in self._by_store:
            raise EntityNotFoundError("store", store_id)
        return self._by_store[store_id]

    def role_counts(self, store_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for member in self.staff_for(store_id):
            counts[member.role.value] = counts.get(member.role.value, 0) + 1
        return counts


def generate_store_staff(store_id: str, global_seed: int) -> List[StaffMember]:
    """Deterministic roster for one store"""
    rng = SeededRandom(derive_seed(store_id, global_seed))
    total = rng.randint(*STAFF_COUNT_RANGE)

    roles = list(MINIMUM_ROLES)
    for _ in range(total - len(MINIMUM_ROLES)):
        roles.append(rng.choice(EXTRA_ROLE_POOL))
    rng.shuffle(roles)

    staff = []
    for idx, role in enumerate(roles):
        staff.append(StaffMember(
            staff_id=f"staff_{store_id}_{idx}",
            store_id=store_id,
            role=role,
            experience=rng.choice(EXPERIENCE_TIERS),
            capacity_score=rng.uniform(*CAPACITY_RANGE),
        ))
    return staff


def assign_staff(stores: List[Store], settings: Optional[Settings] = None) -> StaffRoster:
    """Seed the roster for every store"""
    settings = settings or get_settings()
    roster = StaffRoster({
        store.id: generate_store_staff(store.id, settings.seed.random_seed)
        for store in stores
    })
    logger.info(
        "Staff assigned",
        stores=len(roster.store_ids),
        staff_per_store={store_id: len(roster.staff_for(store_id)) for store_id in roster.store_ids},
    )
    return roster
