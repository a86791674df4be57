# rps_arena/server/invites.py

import itertools
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List

from rps_arena.common.constants import INVITE_ID_PREFIX, MSG_INVITE_TIMEOUT
from rps_arena.common.protocol import build_opponent_response, build_invite_request, build_invite_rejected
from rps_arena.common.logging_utils import get_logger
from rps_arena.server.channel import OneShot
from rps_arena.server.registry import Player, Registry

log = get_logger("server.invites")


class InviteStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


class InviteNotFound(LookupError):
    """No pending invite with that id is addressed to the responder."""
    pass


class InviteError(ValueError):
    """The invite cannot be created (self-invite, opponent busy)."""
    pass


@dataclass(eq=False)
class Invite:
    id: str
    requester: Player
    opponent: Player
    status: InviteStatus = InviteStatus.PENDING
    reason: str = ""
    reply: OneShot = field(default_factory=OneShot, repr=False)


class InviteBroker:
    """
    Pending invites, keyed strictly by invite id.

    Each invite is resolved exactly once: by the opponent's answer, by the
    waiter's timeout, or by the opponent disconnecting. Whoever removes it
    from the pending map owns the resolution.
    """

    def __init__(
        self,
        registry: Registry,
        timeout: float,
        on_accept: Callable[[Player, Player], None],
    ) -> None:
        self.registry = registry
        self.timeout = timeout
        self._on_accept = on_accept
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._pending: Dict[str, Invite] = {}

    def request_opponent(self, requester: Player, opponent_nickname: str) -> Invite:
        """
        Create an invite and forward it to the opponent.
        Raises PlayerNotFound or InviteError without creating anything.
        """
        if opponent_nickname == requester.nickname:
            raise InviteError("You cannot invite yourself.")
        opponent = self.registry.lookup(opponent_nickname)
        if opponent.session is not None:
            raise InviteError(f"Player {opponent_nickname} is already in a game.")

        with self._lock:
            invite = Invite(
                id=f"{INVITE_ID_PREFIX}{next(self._ids)}",
                requester=requester,
                opponent=opponent,
            )
            self._pending[invite.id] = invite
        log.info(f"Invite {invite.id}: {requester.nickname} -> {opponent.nickname}")

        requester.connection.send(
            build_opponent_response(True, f"Invite sent to {opponent.nickname}. Waiting for response..."),
            note=f"opponent_response {invite.id}",
        )
        opponent.connection.send(
            build_invite_request(requester.nickname, invite.id),
            note=f"invite_request {invite.id}",
        )

        t = threading.Thread(
            target=self._await_reply,
            args=(invite,),
            name=f"invite-{invite.id}",
            daemon=True,
        )
        t.start()
        return invite

    def respond(self, responder: Player, request_id: str, accepted: bool) -> Invite:
        with self._lock:
            invite = self._pending.get(request_id)
            if invite is None or invite.opponent is not responder:
                raise InviteNotFound(f"Invite {request_id} not found.")
            if accepted:
                self._resolve_locked(invite, InviteStatus.ACCEPTED, "")
            else:
                self._resolve_locked(
                    invite,
                    InviteStatus.REJECTED,
                    f"Player {responder.nickname} rejected your invite.",
                )
        log.info(f"Invite {request_id} answered by {responder.nickname}: {invite.status.value}")
        return invite

    def withdraw_invites(self, player: Player) -> List[Invite]:
        """Reject every pending invite sent to or by `player` (its connection is gone)."""
        with self._lock:
            doomed = [
                inv for inv in self._pending.values()
                if inv.opponent is player or inv.requester is player
            ]
            for invite in doomed:
                self._resolve_locked(
                    invite,
                    InviteStatus.REJECTED,
                    f"Player {player.nickname} disconnected.",
                )
        for invite in doomed:
            log.info(f"Invite {invite.id} withdrawn: {player.nickname} disconnected")
        return doomed

    def pending_ids(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def _resolve_locked(self, invite: Invite, status: InviteStatus, reason: str) -> None:
        del self._pending[invite.id]
        invite.status = status
        invite.reason = reason
        invite.reply.put(status)

    def _await_reply(self, invite: Invite) -> None:
        try:
            status = invite.reply.get(self.timeout)
        except TimeoutError:
            with self._lock:
                still_pending = self._pending.get(invite.id) is invite
                if still_pending:
                    self._resolve_locked(invite, InviteStatus.TIMED_OUT, MSG_INVITE_TIMEOUT)
            if still_pending:
                log.info(f"Invite {invite.id} timed out after {self.timeout}s")
            # Otherwise an answer won the race; its value is already in the slot.
            status = invite.reply.get()

        if status is InviteStatus.ACCEPTED:
            self._on_accept(invite.requester, invite.opponent)
            return

        invite.requester.connection.send(
            build_invite_rejected(invite.reason),
            note=f"invite_rejected {invite.id} ({status.value})",
        )
