"""Service for managing groups and their members."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settleup.database.models import Group, GroupMember
from settleup.database.session import with_storage_timeout


class GroupService:
    """Service for group operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_group(
            self,
            name: str,
            created_by: str,
            currency: str = "INR",
            members: Optional[List[str]] = None
    ) -> Group:
        """
        Create a new group.

        Args:
            name: Group name
            created_by: Member id of the creator; always becomes a member
            currency: Currency code (default: INR)
            members: Other initial member ids

        Returns:
            Created group
        """
        member_ids = [created_by] + [m for m in (members or []) if m != created_by]

        group = Group(
            name=name,
            created_by=created_by,
            currency=currency,
            members=[GroupMember(member_id=m) for m in dict.fromkeys(member_ids)]
        )

        self.session.add(group)
        await with_storage_timeout(self.session.flush(), "create_group")

        return group

    async def get_group(self, group_id: int) -> Optional[Group]:
        """Get group by ID with members loaded."""
        result = await with_storage_timeout(
            self.session.execute(
                select(Group)
                .where(Group.id == group_id)
                .options(selectinload(Group.members))
            ),
            "get_group"
        )
        return result.scalar_one_or_none()

    async def add_member(self, group_id: int, member_id: str) -> bool:
        """
        Add a member to a group.

        Returns:
            False if the member was already in the group
        """
        if member_id in await self.get_member_ids(group_id):
            return False

        self.session.add(GroupMember(group_id=group_id, member_id=member_id))
        await with_storage_timeout(self.session.flush(), "add_member")
        return True

    async def get_member_ids(self, group_id: int) -> List[str]:
        """Get member ids of a group, sorted."""
        result = await with_storage_timeout(
            self.session.execute(
                select(GroupMember.member_id)
                .where(GroupMember.group_id == group_id)
                .order_by(GroupMember.member_id)
            ),
            "get_member_ids"
        )
        return list(result.scalars().all())

    async def get_member_groups(self, member_id: str) -> List[Group]:
        """Get all groups a member belongs to."""
        result = await with_storage_timeout(
            self.session.execute(
                select(Group)
                .join(GroupMember, GroupMember.group_id == Group.id)
                .where(GroupMember.member_id == member_id)
                .order_by(Group.id)
            ),
            "get_member_groups"
        )
        return list(result.scalars().all())
