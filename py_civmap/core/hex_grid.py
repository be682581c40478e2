"""
Hexagonal grid geometry.

Tiles are addressed by a flat index ``i = y * width + x`` over offset
coordinates. Internally neighbours and rings are computed in axial
coordinates and folded back onto the map, wrapping along the axes that
wrap and dropping anything that leaves a non-wrapping edge.

Direction naming uses "north" for increasing y.
"""

import math
from enum import IntEnum
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..config.map_parameters import HexOrientation, Offset


class Direction(IntEnum):
    N = 0
    NE = 1
    E = 2
    SE = 3
    S = 4
    SW = 5
    W = 6
    NW = 7

    def opposite(self) -> "Direction":
        return Direction((self + 4) % 8)


# Axial offsets, indexed by edge index of the orientation's edge order
HEX_DIRECTIONS = [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]

FLAT_EDGE = (Direction.NE, Direction.SE, Direction.S, Direction.SW, Direction.NW, Direction.N)
FLAT_CORNER = (Direction.E, Direction.SE, Direction.SW, Direction.W, Direction.NW, Direction.NE)
POINTY_EDGE = (Direction.E, Direction.SE, Direction.SW, Direction.W, Direction.NW, Direction.NE)
POINTY_CORNER = (Direction.NE, Direction.SE, Direction.S, Direction.SW, Direction.NW, Direction.N)

# Flow direction -> edge direction of the tile that owns the river edge
FLAT_FLOW_EDGE = {
    Direction.NW: Direction.NE,
    Direction.SE: Direction.NE,
    Direction.NE: Direction.SE,
    Direction.SW: Direction.SE,
    Direction.E: Direction.S,
    Direction.W: Direction.S,
}
POINTY_FLOW_EDGE = {
    Direction.N: Direction.E,
    Direction.S: Direction.E,
    Direction.NE: Direction.SE,
    Direction.SW: Direction.SE,
    Direction.NW: Direction.SW,
    Direction.SE: Direction.SW,
}

_SQRT_3 = math.sqrt(3.0)


class HexGrid:
    """Rectangular hex lattice with optional wrapping on each axis."""

    def __init__(
        self,
        width: int,
        height: int,
        orientation: HexOrientation = HexOrientation.FLAT,
        offset: Offset = Offset.ODD,
        wrap_x: bool = True,
        wrap_y: bool = False,
    ):
        self.width = width
        self.height = height
        self.orientation = orientation
        self.offset = offset
        self.wrap_x = wrap_x
        self.wrap_y = wrap_y
        self.size = width * height

        if orientation == HexOrientation.FLAT:
            self.edge_directions = FLAT_EDGE
            self.corner_directions = FLAT_CORNER
            self._flow_edge = FLAT_FLOW_EDGE
        else:
            self.edge_directions = POINTY_EDGE
            self.corner_directions = POINTY_CORNER
            self._flow_edge = POINTY_FLOW_EDGE
        self._edge_index = {d: i for i, d in enumerate(self.edge_directions)}
        self._corner_index = {d: i for i, d in enumerate(self.corner_directions)}
        self._offset_sign = 1 if offset == Offset.EVEN else -1
        self._neighbor_table = None
        self._neighbor_lists = None

    @property
    def neighbor_table(self) -> np.ndarray:
        """``neighbor_table[i, e]`` is the neighbour across edge ``e``, or -1."""
        if self._neighbor_table is None:
            table = np.full((self.size, 6), -1, dtype=np.int32)
            for index in range(self.size):
                q, r = self.index_to_axial(index)
                for edge, (dq, dr) in enumerate(HEX_DIRECTIONS):
                    neighbor = self.axial_to_index(q + dq, r + dr)
                    if neighbor is not None:
                        table[index, edge] = neighbor
            self._neighbor_table = table
            self._neighbor_lists = [[int(n) for n in row if n >= 0] for row in table]
        return self._neighbor_table

    @classmethod
    def from_parameters(cls, parameters) -> "HexGrid":
        return cls(
            parameters.width,
            parameters.height,
            parameters.hex_orientation,
            parameters.offset,
            parameters.wrap_x,
            parameters.wrap_y,
        )

    def with_size(self, width: int, height: int) -> "HexGrid":
        """Return a grid with the same layout and wrapping but another size."""
        return HexGrid(width, height, self.orientation, self.offset, self.wrap_x, self.wrap_y)

    # Coordinates

    def index_to_offset(self, index: int) -> Tuple[int, int]:
        return index % self.width, index // self.width

    def offset_to_index(self, x: int, y: int) -> int:
        return y * self.width + x

    def normalize_offset(self, x: int, y: int) -> Optional[Tuple[int, int]]:
        """Fold an offset coordinate onto the map, or None when it falls off a non-wrapping edge."""
        if self.wrap_x:
            x %= self.width
        elif not 0 <= x < self.width:
            return None
        if self.wrap_y:
            y %= self.height
        elif not 0 <= y < self.height:
            return None
        return x, y

    def offset_to_axial(self, x: int, y: int) -> Tuple[int, int]:
        if self.orientation == HexOrientation.FLAT:
            return x, y - (x + self._offset_sign * (x & 1)) // 2
        return x - (y + self._offset_sign * (y & 1)) // 2, y

    def axial_to_offset(self, q: int, r: int) -> Tuple[int, int]:
        if self.orientation == HexOrientation.FLAT:
            return q, r + (q + self._offset_sign * (q & 1)) // 2
        return q + (r + self._offset_sign * (r & 1)) // 2, r

    def index_to_axial(self, index: int) -> Tuple[int, int]:
        return self.offset_to_axial(*self.index_to_offset(index))

    def axial_to_index(self, q: int, r: int) -> Optional[int]:
        normalized = self.normalize_offset(*self.axial_to_offset(q, r))
        if normalized is None:
            return None
        return self.offset_to_index(*normalized)

    def latitude(self, index: int) -> float:
        """Distance from the equator in [0, 1]."""
        half = self.height / 2.0
        return abs(half - index // self.width) / half

    # Directions

    def edge_index(self, direction: Direction) -> int:
        return self._edge_index[direction]

    def corner_clockwise(self, direction: Direction) -> Direction:
        return self.corner_directions[(self._corner_index[direction] + 1) % 6]

    def corner_counter_clockwise(self, direction: Direction) -> Direction:
        return self.corner_directions[(self._corner_index[direction] + 5) % 6]

    def edge_direction_for_flow(self, flow: Direction) -> Direction:
        return self._flow_edge[flow]

    # Neighbourhoods

    def neighbor(self, index: int, direction: Direction) -> Optional[int]:
        neighbor = int(self.neighbor_table[index, self._edge_index[direction]])
        return neighbor if neighbor >= 0 else None

    def neighbors(self, index: int) -> List[int]:
        """Existing neighbours in edge order."""
        if self._neighbor_lists is None:
            self.neighbor_table
        return self._neighbor_lists[index]

    def tiles_at_distance(self, index: int, distance: int) -> List[int]:
        """Tiles on the ring at exactly ``distance`` steps, walking from the edge-4 corner."""
        if distance == 0:
            return [index]
        q, r = self.index_to_axial(index)
        dq, dr = HEX_DIRECTIONS[4]
        q += dq * distance
        r += dr * distance
        ring = []
        for step_q, step_r in HEX_DIRECTIONS:
            for _ in range(distance):
                tile = self.axial_to_index(q, r)
                if tile is not None:
                    ring.append(tile)
                q += step_q
                r += step_r
        return ring

    def tiles_in_distance(self, index: int, distance: int) -> Iterator[int]:
        """Tiles within ``distance`` steps, the centre first."""
        for ring in range(distance + 1):
            yield from self.tiles_at_distance(index, ring)

    def distance(self, a: int, b: int) -> int:
        """Hex distance, taking the short way around wrapping axes."""
        ax, ay = self.index_to_offset(a)
        bx, by = self.index_to_offset(b)
        xs = (bx - self.width, bx, bx + self.width) if self.wrap_x else (bx,)
        ys = (by - self.height, by, by + self.height) if self.wrap_y else (by,)
        aq, ar = self.offset_to_axial(ax, ay)
        best = None
        for x in xs:
            for y in ys:
                bq, br = self.offset_to_axial(x, y)
                dq, dr = bq - aq, br - ar
                d = (abs(dq) + abs(dr) + abs(dq + dr)) // 2
                if best is None or d < best:
                    best = d
        return best

    def _pixel(self, q: int, r: int) -> Tuple[float, float]:
        if self.orientation == HexOrientation.FLAT:
            return 1.5 * q, _SQRT_3 / 2.0 * q + _SQRT_3 * r
        return _SQRT_3 * q + _SQRT_3 / 2.0 * r, 1.5 * r

    def estimate_direction(self, start: int, dest: int) -> Optional[Direction]:
        """
        Edge direction that best matches the straight line from start to dest.

        Returns:
            Direction, or None when start == dest
        """
        if start == dest:
            return None
        sx, sy = self.index_to_offset(start)
        dx, dy = self.index_to_offset(dest)
        if self.wrap_x:
            if dx - sx > self.width // 2:
                dx -= self.width
            elif dx - sx < -(self.width // 2):
                dx += self.width
        if self.wrap_y:
            if dy - sy > self.height // 2:
                dy -= self.height
            elif dy - sy < -(self.height // 2):
                dy += self.height
        px0, py0 = self._pixel(*self.offset_to_axial(sx, sy))
        px1, py1 = self._pixel(*self.offset_to_axial(dx, dy))
        vx, vy = px1 - px0, py1 - py0
        best_edge = 0
        best_dot = None
        for edge, (q, r) in enumerate(HEX_DIRECTIONS):
            ux, uy = self._pixel(q, r)
            dot = vx * ux + vy * uy
            if best_dot is None or dot > best_dot:
                best_dot = dot
                best_edge = edge
        return self.edge_directions[best_edge]

    # Vectorised forms used by the fractal ridge builder

    def distance_array(self, xs: np.ndarray, ys: np.ndarray, x: int, y: int) -> np.ndarray:
        """Hex distance from every offset ``(xs, ys)`` to ``(x, y)``."""
        aq, ar = self.offset_to_axial(xs, ys)
        x_variants = (x - self.width, x, x + self.width) if self.wrap_x else (x,)
        y_variants = (y - self.height, y, y + self.height) if self.wrap_y else (y,)
        best = None
        for vx in x_variants:
            for vy in y_variants:
                bq, br = self.offset_to_axial(vx, vy)
                dq = bq - aq
                dr = br - ar
                d = (np.abs(dq) + np.abs(dr) + np.abs(dq + dr)) // 2
                best = d if best is None else np.minimum(best, d)
        return best

    def estimate_direction_array(self, xs: np.ndarray, ys: np.ndarray, x: int, y: int) -> np.ndarray:
        """
        Edge index best matching the line from each ``(xs, ys)`` to ``(x, y)``.

        Returns:
            Int array of edge indices, -1 where the start is the destination
        """
        dx = np.full_like(xs, x)
        dy = np.full_like(ys, y)
        if self.wrap_x:
            delta = dx - xs
            half = self.width // 2
            dx = np.where(delta > half, dx - self.width, np.where(delta < -half, dx + self.width, dx))
        if self.wrap_y:
            delta = dy - ys
            half = self.height // 2
            dy = np.where(delta > half, dy - self.height, np.where(delta < -half, dy + self.height, dy))
        px0, py0 = self._pixel(*self.offset_to_axial(xs, ys))
        px1, py1 = self._pixel(*self.offset_to_axial(dx, dy))
        vx = px1 - px0
        vy = py1 - py0
        dots = np.stack([vx * ux + vy * uy for ux, uy in (self._pixel(q, r) for q, r in HEX_DIRECTIONS)])
        edges = np.argmax(dots, axis=0)
        return np.where((xs == x) & (ys == y), -1, edges)
