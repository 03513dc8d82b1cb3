from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.client import Client, normalize_email
from agenda.models.timestamps import utc_now


class SqlClientStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_email(self, email: str) -> Client | None:
        result = await self.session.execute(select(Client).where(Client.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def upsert_by_email(self, email: str, name: str, phone: str | None) -> str:
        """Create or update the client keyed by normalized email. Returns client id."""
        async with self.session.begin_nested():
            client = await self.get_by_email(email)
            if client:
                client.name = name
                if phone:
                    client.phone = phone
                client.updated_at = utc_now()
            else:
                client = Client(email=normalize_email(email), name=name, phone=phone or None)
            self.session.add(client)
            await self.session.flush()
        return client.id
