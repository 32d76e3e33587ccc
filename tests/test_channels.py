from commhub.services import channels


def test_broadcast_resolves_to_shared_channel():
    assert channels.resolve("broadcast") == "agent:broadcast"
    assert channels.resolve("broadcast") == channels.BROADCAST_CHANNEL


def test_agent_resolves_to_prefixed_channel():
    assert channels.resolve("b1") == "agent:message:b1"


def test_resolution_is_injective_over_agents():
    recipients = ["a", "b", "a:b", "a:", ":b", "agent", "Broadcast", "broadcast ", ""]
    resolved = [channels.resolve(recipient) for recipient in recipients]

    assert len(set(resolved)) == len(recipients)
    assert channels.BROADCAST_CHANNEL not in resolved


def test_is_broadcast_is_exact():
    assert channels.is_broadcast("broadcast")
    assert not channels.is_broadcast("BROADCAST")
    assert not channels.is_broadcast("agent:broadcast")
