"""
router.py — Two-sided notification inboxes.

Each client owns an inbox (the `notifications` field of their record);
the admin owns a single feed held by the store. Inboxes are addressed by
client id, or by ADMIN_INBOX for the admin feed.
"""

import logging
from collections import deque
from dataclasses import replace
from typing import Callable

from engine.records import Actor, Notification, NotificationType, utcnow
from engine.store import ClientRecordStore

log = logging.getLogger(__name__)

ADMIN_INBOX = "admin"
UNKNOWN_SENDER = "A client"


class NotificationRouter:

    def __init__(self, store: ClientRecordStore, clock: Callable = utcnow):
        self.store = store
        self.clock = clock

    def notify(self, actor, recipient_id: str, text: str, title: str = None) -> Notification:
        """
        Route a message to the other side.

        admin  → prepended to the recipient client's own notifications, with
                 the title as given (the text itself when no title is given).
        client → prepended to the admin feed, titled "Message from <company>".
                 `recipient_id` is the sending client's id here.
        """
        actor = Actor(actor) if not isinstance(actor, Actor) else actor
        now = self.clock().isoformat()

        if actor is Actor.admin:
            record = self.store.get(recipient_id)
            note = Notification.create(title or text, text, NotificationType.info, now, "msg")
            self._save_inbox(recipient_id, deque([note, *record.notifications]))
            log.info("Admin notified client %s: %r", recipient_id, note.title)
        else:
            sender = self.store.find(recipient_id)
            company = sender.company_name if sender is not None and sender.company_name else UNKNOWN_SENDER
            note = Notification.create(f"Message from {company}", text, NotificationType.info, now, "msg")
            self._save_inbox(ADMIN_INBOX, deque([note, *self.store.admin_feed]))
            log.info("Client %s messaged the admin.", recipient_id)

        return note

    def inbox(self, inbox: str):
        if inbox == ADMIN_INBOX:
            return self.store.admin_feed
        return self.store.get(inbox).notifications

    def mark_read(self, inbox: str, notification_id: str) -> bool:
        """Returns True when a notification actually flipped to read."""
        notes = deque(self.inbox(inbox))
        for i, note in enumerate(notes):
            if note.id == notification_id:
                if note.read:
                    return False
                notes[i] = replace(note, read=True)
                self._save_inbox(inbox, notes)
                return True
        return False

    def mark_all_read(self, inbox: str) -> int:
        notes = self.inbox(inbox)
        unread = sum(1 for n in notes if not n.read)
        if unread:
            self._save_inbox(inbox, deque(replace(n, read=True) if not n.read else n for n in notes))
        return unread

    def unread_count(self, inbox: str) -> int:
        return sum(1 for n in self.inbox(inbox) if not n.read)

    def _save_inbox(self, inbox: str, notes: deque):
        if inbox == ADMIN_INBOX:
            self.store.replace_admin_feed(notes)
        else:
            self.store.put(replace(self.store.get(inbox), notifications=notes))
