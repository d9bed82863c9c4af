"""
Notifier — tells a busy channel to take it elsewhere.

When a channel's activity crosses its threshold the actor claims an
ActivitySnapshot and hands it to ``Notifier.alert()`` in a background task.
The alert is one message: the monk, a proverb, and, when a Discourse archive
is configured and accepts the transcript, a link to the new topic. If the
archive is missing or fails the alert is still sent without the link.
"""

from __future__ import annotations

import random

import structlog

from wisemonk.archive.base import BaseArchive
from wisemonk.channels.base import BaseTransport
from wisemonk.core.constants import TITLE_MAX_CHARS, TITLE_MIN_CHARS, TITLE_PREFIX
from wisemonk.core.exceptions import ArchiveError
from wisemonk.monitor.models import ActivitySnapshot

logger = structlog.get_logger()

YODA = r"""
                    ____
                 _.' :  `._
             .-.'`.  ;   .'`.-.
    __      / : ___\ ;  /___ ; \      __
  ,'_ ""--.:__;".-.";: :".-.":__;.--"" _`,
  :' `.t""--.. '<@.`;_  ',@>` ..--""j.' `;
       `:-.._J '-.-'L__ `-- ' L_..-;'
         "-.__ ;  .-"  "-.  : __.-"
             L ' /.------.\ ' J
              "-.   "--"   .-"
             __.l"-:_JL_;-";.__
          .-j/'.;  ;''''  / .'\"-.
        .' /:`. "-.:     .-" .';  `.
     .-"  / ;  "-. "-..-" .-"  :    "-.
  .+"-.  : :      "-.__.-"      ;-._   \
  ; \  `.; ;                    : : "+. ;
  :  ;   ; ;                    : ;  : \:
 : `."-; ;  ;                  :  ;   ,/;
  ;    -: ;  :                ;  : .-"'  :
  :\     \  : ;             : \.-"      :
   ;`.    \  ; :            ;.'_..--  / ;
   :  "-.  "-:  ;          :/."      .'  :
     \       .-`.\        /t-""  ":-+.   :
      `.  .-"    `l    __/ /`. :  ; ; \  ;
        \   .-" .-"-.-"  .' .'j \  /   ;/
         \ / .-"   /.     .'.' ;_:'    ;
          :-""-.`./-.'     /    `.___.'
                \ `t  ._  /
                 "-.t-._:'
"""

# Posted with every alert, one at random.
PROVERBS = [
    "Don't communicate by sharing memory, share memory by communicating.",
    "Concurrency is not parallelism.",
    "Channels orchestrate; mutexes serialize.",
    "The bigger the interface, the weaker the abstraction.",
    "Make the zero value useful.",
    "interface{} says nothing.",
    "Gofmt's style is no one's favorite, yet gofmt is everyone's favorite.",
    "A little copying is better than a little dependency.",
    "Syscall must always be guarded with build tags.",
    "Cgo must always be guarded with build tags.",
    "Cgo is not Go.",
    "With the unsafe package there are no guarantees.",
    "Clear is better than clever.",
    "Reflection is never clear.",
    "Errors are values.",
    "Don't just check errors, handle them gracefully.",
    "Design the architecture, name the components, document the details.",
    "Documentation is for users.",
    "Don't panic.",
]


def sanitize_title(title: str) -> str:
    """
    Fit a topic title into Discourse's 20–100 character limits.

    Short titles get a prefix. Longer ones are cut to 100 characters and
    then back to the last word break, as long as that keeps 20 characters.
    """
    t = title.strip()
    if len(t) < TITLE_MIN_CHARS:
        return TITLE_PREFIX + t

    if len(t) > TITLE_MAX_CHARS:
        t = t[:TITLE_MAX_CHARS]
    idx = t.rfind(" ")
    if idx >= TITLE_MIN_CHARS:
        t = t[:idx]
    return t


class Notifier:
    """Composes and sends threshold alerts for one channel."""

    def __init__(
        self,
        transport: BaseTransport,
        channel_id: str,
        archive: BaseArchive | None = None,
        category: str = "",
        rng: random.Random | None = None,
    ) -> None:
        self._transport = transport
        self._channel_id = channel_id
        self._archive = archive
        self._category = category
        self._rng = rng or random.Random()
        self._log = logger.bind(channel_id=channel_id)

    def compose(self, closing: str = "") -> str:
        proverb = self._rng.choice(PROVERBS)
        return f"```{YODA}\n{proverb}\n{closing}```"

    async def closing_line(self, snapshot: ActivitySnapshot) -> str:
        """Archive the snapshot and return the "move your discussion" line, or ""."""
        if self._archive is None or not snapshot.first_message:
            return ""
        title = sanitize_title(snapshot.first_message)
        try:
            url = await self._archive.create_topic(title, snapshot.transcript, self._category)
        except ArchiveError as exc:
            self._log.warning("alert_archive_failed", error=str(exc))
            return ""
        if not url:
            return ""
        return f"Please move your discussion to {url}"

    async def alert(self, snapshot: ActivitySnapshot) -> None:
        """Send exactly one alert for *snapshot*. Never retried."""
        closing = await self.closing_line(snapshot)
        message = self._transport.compose_outgoing(self.compose(closing), self._channel_id)
        await self._transport.send(message)
        self._log.info("alert_sent", count=snapshot.count, archived=bool(closing))
