from race.session.session import RaceSession
from race.tests.mocks import MockConnection


async def join_players(session: RaceSession, *names: str) -> list[MockConnection]:
    """Join one MockConnection per name, then clear their message history."""
    connections = []
    for name in names:
        conn = MockConnection(connection_id=f"conn-{name.lower()}")
        await session.join(conn, name)
        connections.append(conn)
    for conn in connections:
        conn.clear()
    return connections


def message_types(conn: MockConnection) -> list[str]:
    return [m["type"] for m in conn.sent_messages]
