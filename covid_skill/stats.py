from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import aiohttp
from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I could not find the data you are looking for."
ROW_FIELD_COUNT = 8

Fetcher = Callable[[str], Awaitable[str]]


class LookupStatus(str, Enum):
    OK = "ok"
    TRANSPORT_ERROR = "transport_error"
    FORMAT_ERROR = "format_error"
    NOT_FOUND = "not_found"


class StatsError(Exception):
    status = LookupStatus.FORMAT_ERROR


class StatsTransportError(StatsError):
    status = LookupStatus.TRANSPORT_ERROR


class StatsFormatError(StatsError):
    status = LookupStatus.FORMAT_ERROR


class LocationNotFoundError(StatsError):
    status = LookupStatus.NOT_FOUND


@dataclass(slots=True, frozen=True)
class StatsRow:
    name: str
    total_cases: str
    new_cases: str
    total_deaths: str
    new_deaths: str
    total_recovered: str
    active_cases: str
    serious_cases: str


@dataclass(slots=True, frozen=True)
class StatsLookup:
    status: LookupStatus
    row: StatsRow | None = None
    detail: str = ""

    @property
    def sentence(self) -> str:
        if self.status is LookupStatus.OK and self.row is not None:
            return render_sentence(self.row)
        return APOLOGY


def _compact(text: str) -> str:
    return "".join(text.split()).upper()


def _find_stats_table(soup: BeautifulSoup, header_marker: str) -> tuple[Tag, int]:
    marker = _compact(header_marker)
    for header in soup.find_all("th"):
        if marker and marker in _compact(header.get_text()):
            table = header.find_parent("table")
            header_row = header.find_parent("tr")
            if table is None or header_row is None:
                continue
            columns = header_row.find_all(["th", "td"], recursive=False)
            column = next((idx for idx, cell in enumerate(columns) if cell is header), 0)
            return table, column
    raise StatsFormatError(f"header_marker_missing:{header_marker}")


def _find_row(body: Tag, location: str, column: int) -> list[Tag]:
    wanted = _compact(location)
    if not wanted:
        raise LocationNotFoundError("empty_location")

    partial: list[Tag] | None = None
    for tr in body.find_all("tr"):
        cells = tr.find_all("td", recursive=False)
        if len(cells) <= column:
            continue
        name = _compact(cells[column].get_text())
        if name == wanted:
            return cells[column:]
        if partial is None and wanted in name:
            partial = cells[column:]
    if partial is None:
        raise LocationNotFoundError(location)
    return partial


def extract_row(html: str, location: str, header_marker: str) -> StatsRow:
    soup = BeautifulSoup(html, "html.parser")
    table, column = _find_stats_table(soup, header_marker)
    body = table.find("tbody")
    if body is None:
        raise StatsFormatError("table_body_missing")

    cells = _find_row(body, location, column)
    if len(cells) < ROW_FIELD_COUNT:
        raise StatsFormatError(f"row_too_short:{len(cells)}")

    name = " ".join(cells[0].get_text().split()).upper()
    values = [_compact(cell.get_text()) or "0" for cell in cells[1:ROW_FIELD_COUNT]]
    return StatsRow(name or "0", *values)


def render_sentence(row: StatsRow) -> str:
    return (
        f"{row.name} has {row.total_cases} total cases, {row.new_cases} new cases, "
        f"{row.total_deaths} total deaths, {row.new_deaths} new deaths, "
        f"{row.total_recovered} total recovered, {row.active_cases} active cases "
        f"and {row.serious_cases} serious cases of Coronavirus till now."
    )


async def fetch_page(url: str, timeout_sec: float) -> str:
    timeout = aiohttp.ClientTimeout(total=timeout_sec)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise StatsTransportError(f"{type(exc).__name__}: {exc}") from exc


class StatsClient:
    def __init__(
        self,
        url: str,
        header_marker: str,
        timeout_sec: float = 10.0,
        fetcher: Fetcher | None = None,
    ) -> None:
        self.url = url
        self.header_marker = header_marker
        self.timeout_sec = timeout_sec
        self._fetcher = fetcher

    async def _fetch(self) -> str:
        if self._fetcher is not None:
            return await self._fetcher(self.url)
        return await fetch_page(self.url, self.timeout_sec)

    async def lookup(self, location: str) -> StatsLookup:
        try:
            html = await self._fetch()
            row = extract_row(html, location, self.header_marker)
        except StatsError as exc:
            logger.warning(
                "stats_lookup_failed",
                extra={"action": "stats_lookup", "status": exc.status.value, "location": location, "reason": str(exc)},
            )
            return StatsLookup(exc.status, detail=str(exc))
        except Exception as exc:
            logger.exception(
                "stats_lookup_crashed",
                extra={"action": "stats_lookup", "status": LookupStatus.FORMAT_ERROR.value, "location": location},
            )
            return StatsLookup(LookupStatus.FORMAT_ERROR, detail=f"{type(exc).__name__}: {exc}")

        logger.info(
            "stats_lookup_ok",
            extra={"action": "stats_lookup", "status": LookupStatus.OK.value, "location": location},
        )
        return StatsLookup(LookupStatus.OK, row=row)

    async def describe(self, location: str) -> str:
        result = await self.lookup(location)
        return result.sentence
