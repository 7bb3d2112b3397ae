"""Leaderboard client: fetch rankings and submit scores without blocking the game loop.

Public operations never raise on network or data problems; they log and
degrade to `None` (fetch) or a failed SubmissionOutcome (post).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import aiohttp

from leaderboard.config import ClientConfig
from leaderboard.errors import AmbiguousResponseError, FormatError, RetryExhausted, ValidationError
from leaderboard.net.callbacks import CallbackRegistry
from leaderboard.net.retry import RetryPolicy
from leaderboard.net.singleflight import SingleFlight
from leaderboard.net.transport import Transport
from leaderboard.ranking import rules
from leaderboard.ranking.models import QualificationDecision, RankingSnapshot, SubmissionOutcome
from leaderboard.ranking.payload import parse_ranking, parse_submission

logger = logging.getLogger(__name__)

FETCH = "fetch"
POST = "post"


class LeaderboardClient:
    def __init__(
        self,
        config: ClientConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        registry: CallbackRegistry | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        now: Callable[[], float] = time.time,
    ):
        self.config = config
        self.registry = registry if registry is not None else CallbackRegistry()
        self._session = session
        self._owns_session = False
        self._transport = transport
        self._sleep = sleep
        self._now = now

        self._flights = SingleFlight()
        self._last_good: RankingSnapshot | None = None

        logger.info("leaderboard client ready: %s", config.endpoint_url or "<no endpoint>")

    async def __aenter__(self) -> "LeaderboardClient":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def start(self) -> None:
        if self._transport is not None:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        self._transport = Transport(self._session, self.config, self.registry)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._transport = None
            self._owns_session = False

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError("client not started; use `async with` or call start()")
        return self._transport

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay_sec=self.config.backoff_base_sec,
            sleep=self._sleep,
        )

    # Cache / state

    @property
    def cached_ranking(self) -> RankingSnapshot | None:
        return self._last_good

    def clear_cache(self) -> None:
        self._last_good = None
        logger.info("ranking cache cleared")

    def is_loading(self, kind: str = FETCH) -> bool:
        if kind == FETCH:
            return self._flights.in_flight(FETCH)
        return any(isinstance(k, tuple) and k[0] == kind for k in self._flights.keys())

    def update_config(self, **changes) -> None:
        self.config.update(**changes)
        logger.info("leaderboard config updated: %s", changes)

    # Fetch

    async def fetch_ranking(self) -> RankingSnapshot | None:
        if self._flights.in_flight(FETCH):
            logger.info("ranking fetch already in flight, waiting for it")
        try:
            return await self._flights.do(FETCH, self._fetch_once, wait_timeout=self.config.max_wait_sec())
        except asyncio.TimeoutError:
            logger.warning("gave up waiting for in-flight ranking fetch")
            return self._last_good

    async def _fetch_once(self) -> RankingSnapshot | None:
        transport = self.transport
        logger.info("fetching ranking")

        async def attempt() -> RankingSnapshot:
            raw = await transport.attempt_fetch()
            return parse_ranking(raw, date_format=self.config.date_format, now=self._now)

        try:
            snapshot = await self._retry_policy().run(attempt, label="ranking fetch")
        except FormatError as e:
            logger.error("ranking endpoint returned an unexpected payload: %s", e)
            return None
        except RetryExhausted:
            if self._last_good is not None:
                logger.warning("ranking unavailable, returning last good snapshot")
                return self._last_good
            logger.error("ranking unavailable")
            return None

        self._last_good = snapshot
        logger.info("ranking fetched: %d entries", len(snapshot.entries))
        return snapshot

    # Rules

    def get_user_rank(self, score: int, snapshot: RankingSnapshot | None) -> int | None:
        return rules.get_user_rank(score, snapshot)

    def should_post_to_ranking(self, score: int, snapshot: RankingSnapshot | None) -> QualificationDecision:
        return rules.should_post_to_ranking(score, snapshot, top_n=self.config.qualify_top_n)

    # Submit

    async def post_score(self, score: int | float, name: str) -> SubmissionOutcome:
        try:
            score = rules.validate_score(score)
            name = rules.validate_player_name(name, max_length=self.config.name_max_length)
        except ValidationError as e:
            logger.warning("rejected submission input: %s", e)
            return SubmissionOutcome.failed(str(e))

        key = (POST, score, name)
        # Pre-check fetch, submission, confirmation fetch.
        try:
            return await self._flights.do(
                key, lambda: self._post_once(score, name), wait_timeout=self.config.max_wait_sec() * 3
            )
        except asyncio.TimeoutError:
            logger.warning("gave up waiting for in-flight submission of %d by %s", score, name)
            return SubmissionOutcome.failed("ranking unavailable, try again later")

    async def _post_once(self, score: int, name: str) -> SubmissionOutcome:
        snapshot = await self.fetch_ranking()
        decision = self.should_post_to_ranking(score, snapshot)
        if not decision.should_post:
            logger.info("score %d does not qualify: %s", score, decision.reason)
            return SubmissionOutcome.failed(decision.reason)

        transport = self.transport
        logger.info("submitting score %d for %s", score, name)

        async def attempt() -> SubmissionOutcome:
            raw = await transport.attempt_post(score, name)
            return parse_submission(raw)

        try:
            outcome = await self._retry_policy().run(attempt, label="score submission")
        except AmbiguousResponseError as e:
            logger.error("ambiguous submission response: %s", e)
            return SubmissionOutcome.failed("unexpected response from ranking server")
        except FormatError as e:
            logger.error("malformed submission response: %s", e)
            return SubmissionOutcome.failed("unexpected response from ranking server")
        except RetryExhausted:
            return SubmissionOutcome.failed("ranking unavailable, try again later")

        if not outcome.success:
            logger.warning("submission rejected: %s", outcome.message)
            return outcome

        logger.info("submission accepted, rank %s", outcome.rank)
        confirmed = await self.fetch_ranking()
        return SubmissionOutcome(
            success=True,
            rank=outcome.rank,
            message=outcome.message,
            snapshot=confirmed,
        )
