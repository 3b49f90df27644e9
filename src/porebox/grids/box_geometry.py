"""Finite-volume geometry of the box scheme.

In the box scheme, the degrees of freedom live on the vertices of a finite element
grid. Every element is split into sub-control volumes (one per vertex of the element),
separated by sub-control-volume faces. The union of the sub-control volumes of all
elements sharing a vertex forms the control volume (box) of that vertex.

Quantities at the integration point of a face are interpolated with the (multi-)linear
finite element basis of the element. Each face therefore stores the values and
gradients of the shape functions at its integration point.

Two constructors are provided:

1. :func:`line_grid`: 1D elements on an interval.
2. :func:`rectangle_grid`: 2D bilinear (Q1) elements on a tensor product of nodes.

Local vertex numbering of a 2D element follows the lexicographic ordering
``(x0, y0), (x1, y0), (x0, y1), (x1, y1)``.

"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

__all__ = [
    "SubControlVolume",
    "SubControlVolumeFace",
    "BoundaryFace",
    "ElementGeometry",
    "BoxGrid",
    "line_grid",
    "rectangle_grid",
]


@dataclass
class SubControlVolume:
    """Part of an element associated with one of its vertices."""

    local_idx: int
    """Index of the vertex inside the element."""

    global_idx: int
    """Global index of the vertex, i.e. of the degrees of freedom."""

    volume: float
    """Volume of the sub-control volume (length in 1D, area in 2D)."""

    center: np.ndarray
    """Coordinates of the associated vertex."""


@dataclass
class SubControlVolumeFace:
    """Interior face between two sub-control volumes of an element."""

    i: int
    """Local index of the sub-control volume on the inner side."""

    j: int
    """Local index of the sub-control volume on the outer side."""

    normal: np.ndarray
    """Face normal pointing from ``i`` to ``j``, scaled with the face area."""

    ip_global: np.ndarray
    """Coordinates of the integration point."""

    shape_value: np.ndarray
    """Values of the element's shape functions at the integration point,
    ``shape=(num_scv,)``."""

    grad: np.ndarray
    """Gradients of the element's shape functions at the integration point,
    ``shape=(num_scv, dim)``."""

    @property
    def area(self) -> float:
        return float(np.linalg.norm(self.normal))


@dataclass
class BoundaryFace:
    """Part of the domain boundary belonging to a sub-control volume."""

    scv_idx: int
    """Local index of the sub-control volume the face belongs to."""

    normal: np.ndarray
    """Outer unit normal scaled with the face area."""

    ip_global: np.ndarray
    """Coordinates of the integration point."""

    shape_value: np.ndarray
    """Values of the element's shape functions at the integration point."""

    grad: np.ndarray
    """Gradients of the element's shape functions at the integration point."""

    @property
    def area(self) -> float:
        return float(np.linalg.norm(self.normal))


@dataclass
class ElementGeometry:
    """Sub-control volumes, interior faces and boundary faces of one element."""

    element_idx: int
    scvs: list[SubControlVolume] = field(default_factory=list)
    faces: list[SubControlVolumeFace] = field(default_factory=list)
    boundary_faces: list[BoundaryFace] = field(default_factory=list)

    @property
    def num_scv(self) -> int:
        return len(self.scvs)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    @property
    def dim(self) -> int:
        return self.scvs[0].center.size

    def boundary_scvs(self) -> list[int]:
        """Sorted local indices of the sub-control volumes touching the boundary."""
        return sorted({bf.scv_idx for bf in self.boundary_faces})

    def global_indices(self) -> np.ndarray:
        """Global vertex indices of the element, in local order."""
        return np.array([scv.global_idx for scv in self.scvs], dtype=int)


class BoxGrid:
    """Collection of the element geometries of a grid.

    Parameters:
        nodes: ``shape=(num_vertices, dim)``

            Coordinates of the vertices.
        elements: Geometries of all elements.

    """

    def __init__(self, nodes: np.ndarray, elements: list[ElementGeometry]) -> None:
        self.nodes: np.ndarray = nodes
        self.elements: list[ElementGeometry] = elements

    @property
    def num_vertices(self) -> int:
        return self.nodes.shape[0]

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def dim(self) -> int:
        return self.nodes.shape[1]

    def box_volumes(self) -> np.ndarray:
        """Volume of the control volume of every vertex."""
        volumes = np.zeros(self.num_vertices)
        for elem in self.elements:
            for scv in elem.scvs:
                volumes[scv.global_idx] += scv.volume
        return volumes

    def __repr__(self) -> str:
        return (
            f"BoxGrid of dimension {self.dim} with {self.num_elements} elements"
            f" and {self.num_vertices} vertices"
        )


def _line_shape(xi: float, h: float) -> tuple[np.ndarray, np.ndarray]:
    values = np.array([1.0 - xi, xi])
    grads = np.array([[-1.0 / h], [1.0 / h]])
    return values, grads


def line_grid(x_nodes: np.ndarray) -> BoxGrid:
    """Creates the box geometry of a 1D grid.

    Parameters:
        x_nodes: Strictly increasing vertex coordinates.

    Raises:
        ValueError: If fewer than two nodes are given or the nodes are not strictly
            increasing.

    Returns:
        The grid, whose boundary faces are located at the first and the last node.

    """
    x = np.asarray(x_nodes, dtype=float)
    if x.size < 2 or np.any(np.diff(x) <= 0):
        raise ValueError("Expecting at least two strictly increasing nodes.")

    num_elements = x.size - 1
    elements = []
    for e in range(num_elements):
        x0, x1 = x[e], x[e + 1]
        h = x1 - x0
        scvs = [
            SubControlVolume(0, e, h / 2.0, np.array([x0])),
            SubControlVolume(1, e + 1, h / 2.0, np.array([x1])),
        ]
        values, grads = _line_shape(0.5, h)
        faces = [
            SubControlVolumeFace(
                0, 1, np.array([1.0]), np.array([x0 + h / 2.0]), values, grads
            )
        ]
        boundary_faces = []
        if e == 0:
            values, grads = _line_shape(0.0, h)
            boundary_faces.append(
                BoundaryFace(0, np.array([-1.0]), np.array([x0]), values, grads)
            )
        if e == num_elements - 1:
            values, grads = _line_shape(1.0, h)
            boundary_faces.append(
                BoundaryFace(1, np.array([1.0]), np.array([x1]), values, grads)
            )
        elements.append(ElementGeometry(e, scvs, faces, boundary_faces))

    return BoxGrid(x.reshape((-1, 1)), elements)


def _rectangle_shape(
    xi: float, eta: float, hx: float, hy: float
) -> tuple[np.ndarray, np.ndarray]:
    """Bilinear shape functions on the reference square and their gradients in
    physical coordinates."""
    values = np.array(
        [(1 - xi) * (1 - eta), xi * (1 - eta), (1 - xi) * eta, xi * eta]
    )
    grads = np.array(
        [
            [-(1 - eta) / hx, -(1 - xi) / hy],
            [(1 - eta) / hx, -xi / hy],
            [-eta / hx, (1 - xi) / hy],
            [eta / hx, xi / hy],
        ]
    )
    return values, grads


def rectangle_grid(x_nodes: np.ndarray, y_nodes: np.ndarray) -> BoxGrid:
    """Creates the box geometry of a 2D grid of rectangles.

    The global index of the vertex ``(x_nodes[i], y_nodes[j])`` is
    ``j * x_nodes.size + i``.

    Parameters:
        x_nodes: Strictly increasing node coordinates in x-direction.
        y_nodes: Strictly increasing node coordinates in y-direction.

    Raises:
        ValueError: If a direction has fewer than two nodes or the nodes are not
            strictly increasing.

    Returns:
        The grid. Every element has four sub-control volumes and four interior faces.
        Elements at the domain boundary have two boundary faces per boundary edge.

    """
    x = np.asarray(x_nodes, dtype=float)
    y = np.asarray(y_nodes, dtype=float)
    for c in (x, y):
        if c.size < 2 or np.any(np.diff(c) <= 0):
            raise ValueError("Expecting at least two strictly increasing nodes.")

    nx, ny = x.size, y.size
    xx, yy = np.meshgrid(x, y)
    nodes = np.column_stack((xx.ravel(), yy.ravel()))

    elements = []
    for ey in range(ny - 1):
        for ex in range(nx - 1):
            x0, x1 = x[ex], x[ex + 1]
            y0, y1 = y[ey], y[ey + 1]
            hx, hy = x1 - x0, y1 - y0

            vertices = [
                ey * nx + ex,
                ey * nx + ex + 1,
                (ey + 1) * nx + ex,
                (ey + 1) * nx + ex + 1,
            ]
            corners = [(x0, y0), (x1, y0), (x0, y1), (x1, y1)]
            scvs = [
                SubControlVolume(
                    loc, vertices[loc], hx * hy / 4.0, np.array(corners[loc])
                )
                for loc in range(4)
            ]

            # (i, j, normal, local coordinates of the integration point)
            face_data = [
                (0, 1, (hy / 2.0, 0.0), (0.5, 0.25)),
                (2, 3, (hy / 2.0, 0.0), (0.5, 0.75)),
                (0, 2, (0.0, hx / 2.0), (0.25, 0.5)),
                (1, 3, (0.0, hx / 2.0), (0.75, 0.5)),
            ]
            faces = []
            for i, j, normal, (xi, eta) in face_data:
                values, grads = _rectangle_shape(xi, eta, hx, hy)
                faces.append(
                    SubControlVolumeFace(
                        i,
                        j,
                        np.array(normal),
                        np.array([x0 + xi * hx, y0 + eta * hy]),
                        values,
                        grads,
                    )
                )

            # (scv, outer normal, local coordinates of the integration point)
            boundary_data = []
            if ey == 0:
                boundary_data += [
                    (0, (0.0, -hx / 2.0), (0.25, 0.0)),
                    (1, (0.0, -hx / 2.0), (0.75, 0.0)),
                ]
            if ey == ny - 2:
                boundary_data += [
                    (2, (0.0, hx / 2.0), (0.25, 1.0)),
                    (3, (0.0, hx / 2.0), (0.75, 1.0)),
                ]
            if ex == 0:
                boundary_data += [
                    (0, (-hy / 2.0, 0.0), (0.0, 0.25)),
                    (2, (-hy / 2.0, 0.0), (0.0, 0.75)),
                ]
            if ex == nx - 2:
                boundary_data += [
                    (1, (hy / 2.0, 0.0), (1.0, 0.25)),
                    (3, (hy / 2.0, 0.0), (1.0, 0.75)),
                ]
            boundary_faces = []
            for scv_idx, normal, (xi, eta) in boundary_data:
                values, grads = _rectangle_shape(xi, eta, hx, hy)
                boundary_faces.append(
                    BoundaryFace(
                        scv_idx,
                        np.array(normal),
                        np.array([x0 + xi * hx, y0 + eta * hy]),
                        values,
                        grads,
                    )
                )

            elements.append(
                ElementGeometry(ey * (nx - 1) + ex, scvs, faces, boundary_faces)
            )

    return BoxGrid(nodes, elements)
