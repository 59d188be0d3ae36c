"""Fixed-size tiles for chunked local processing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Protocol, runtime_checkable

from ...exceptions import OperationCancelledError
from ..value_objects.geometry import BoundingBox

# Called after each tile with (tiles_done, tiles_total)
TileCallback = Callable[[int, int], None]


@runtime_checkable
class Cancellable(Protocol):
    """Anything that can tell a long-running loop to stop."""
    
    @property
    def is_cancelled(self) -> bool:
        ...


@dataclass(frozen=True, slots=True)
class Tile:
    """Rectangular chunk of a buffer."""
    x: int
    y: int
    width: int
    height: int
    
    @property
    def x1(self) -> int:
        return self.x + self.width
    
    @property
    def y1(self) -> int:
        return self.y + self.height
    
    @property
    def key(self) -> tuple[int, int]:
        return (self.x, self.y)


def iter_tiles(
    width: int,
    height: int,
    tile_size: int,
    region: BoundingBox | None = None
) -> Iterator[Tile]:
    """Yield tiles of a width x height buffer in row-major order.
    
    The grid is anchored at the origin. With ``region`` only tiles that
    intersect it are yielded.
    """
    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            tile = Tile(x, y, min(tile_size, width - x), min(tile_size, height - y))
            if region is not None and not region.intersects(
                BoundingBox(tile.x, tile.y, tile.width, tile.height)
            ):
                continue
            yield tile


def count_tiles(width: int, height: int, tile_size: int) -> int:
    """Number of tiles covering a whole buffer."""
    return (-(-width // tile_size)) * (-(-height // tile_size))


def tile_containing(x: int, y: int, width: int, height: int, tile_size: int) -> Tile:
    """The grid tile that holds pixel (x, y)."""
    tx = (x // tile_size) * tile_size
    ty = (y // tile_size) * tile_size
    return Tile(tx, ty, min(tile_size, width - tx), min(tile_size, height - ty))


def check_cancelled(token: Cancellable | None) -> None:
    """Raise if the token has been signalled."""
    if token is not None and token.is_cancelled:
        raise OperationCancelledError()
