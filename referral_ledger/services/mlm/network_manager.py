"""
Referral network management.

Creates referral edges and referral codes.
"""

import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.business_constants import (
    REFERRAL_CODE_LENGTH,
    REFERRAL_TREE_DEPTH,
)
from referral_ledger.models.referral import Referral
from referral_ledger.models.user import User
from referral_ledger.repositories.master_profile_repository import (
    MasterProfileRepository,
)
from referral_ledger.repositories.referral_repository import ReferralRepository
from referral_ledger.repositories.user_repository import UserRepository
from referral_ledger.utils.exceptions import InvalidReferralError, NotFoundError


# Upper bound on ancestors inspected by the cycle check
MAX_ANCESTOR_SCAN = 100

# Attempts to find an unused referral code
CODE_GENERATION_ATTEMPTS = 5


def generate_referral_code() -> str:
    """Generate an 8-character upper-case referral code."""
    return uuid.uuid4().hex[:REFERRAL_CODE_LENGTH].upper()


class ReferralNetworkManager:
    """Manages referral edges and codes."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize network manager."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.profile_repo = MasterProfileRepository(session)

    async def create_referral(
        self, referrer_id: int, referred_id: int
    ) -> tuple[Referral, bool]:
        """
        Create referral edge (idempotent).

        Creating an existing pair returns the existing edge. A new edge also
        records the referrer as the referred user's direct referrer (when none
        is set) and bumps the referrer's referrals_count if the referrer is a
        master.

        Args:
            referrer_id: Inviting user
            referred_id: Invited user

        Returns:
            Tuple of (edge, created)

        Raises:
            InvalidReferralError: Self-referral or cycle
            NotFoundError: Either user does not exist
        """
        if referrer_id == referred_id:
            raise InvalidReferralError("User cannot refer themselves")

        existing = await self.referral_repo.get_edge(referrer_id, referred_id)
        if existing:
            return existing, False

        referrer = await self.user_repo.get_by_id(referrer_id)
        if referrer is None:
            raise NotFoundError("User", referrer_id)
        referred = await self.user_repo.get_by_id(referred_id)
        if referred is None:
            raise NotFoundError("User", referred_id)

        if await self._is_ancestor(referred_id, referrer):
            logger.warning(
                "Referral loop detected",
                extra={"referrer_id": referrer_id, "referred_id": referred_id},
            )
            raise InvalidReferralError("Referral chain cannot be cyclic")

        edge, created = await self.referral_repo.get_or_create(
            referrer_id, referred_id
        )
        if not created:
            return edge, False

        await self.user_repo.set_referrer_if_unset(referred_id, referrer_id)

        if referrer.is_master:
            profile = await self.profile_repo.get_or_create_for_update(referrer_id)
            profile.referrals_count += 1

        await self.session.flush()

        logger.info(
            "Referral relationship created",
            extra={
                "referral_id": edge.id,
                "referrer_id": referrer_id,
                "referred_id": referred_id,
            },
        )
        return edge, True

    async def get_tree_owner_ids(self, user_id: int) -> list[int]:
        """
        Get users whose referral tree shows user_id's direct referrals.

        That is user_id itself plus its referrers up to
        REFERRAL_TREE_DEPTH - 1 edges above it.

        Args:
            user_id: User that gained or lost a direct referral

        Returns:
            User IDs, user_id first
        """
        owners = [user_id]
        seen = {user_id}
        frontier = [user_id]
        for _ in range(REFERRAL_TREE_DEPTH - 1):
            next_frontier = []
            for current_id in frontier:
                for referrer_id in await self.referral_repo.get_referrer_ids(
                    current_id
                ):
                    if referrer_id not in seen:
                        seen.add(referrer_id)
                        owners.append(referrer_id)
                        next_frontier.append(referrer_id)
            frontier = next_frontier
        return owners

    async def _is_ancestor(self, candidate_id: int, start: User) -> bool:
        """Check if candidate_id appears in start's referrer chain."""
        current = start
        for _ in range(MAX_ANCESTOR_SCAN):
            if current.referrer_id is None:
                return False
            if current.referrer_id == candidate_id:
                return True
            current = await self.user_repo.get_by_id(current.referrer_id)
            if current is None:
                return False
        return False

    async def assign_referral_code(self, user_id: int) -> str:
        """
        Return the user's referral code, generating one if missing.

        Args:
            user_id: User ID

        Returns:
            Referral code

        Raises:
            NotFoundError: User does not exist
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        if user.referral_code:
            return user.referral_code

        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = generate_referral_code()
            if not await self.user_repo.exists(referral_code=code):
                user.referral_code = code
                await self.session.flush()
                logger.info(
                    "Referral code assigned",
                    extra={"user_id": user_id, "code": code},
                )
                return code

        raise RuntimeError("Could not generate a unique referral code")
