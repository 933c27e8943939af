"""Geometry helpers: distances and track impact parameters."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import math

from .models import Muon, Point3, Vertex


def dot3(a: Point3, b: Point3) -> float:
    """3D dot product."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def norm3(a: Point3) -> float:
    """Euclidean norm of a 3D vector."""
    return math.sqrt(dot3(a, a))


def distance3(a: Point3, b: Point3) -> float:
    """Euclidean distance between two 3D points."""
    return norm3((a[0] - b[0], a[1] - b[1], a[2] - b[2]))


def transverse_impact_parameter(muon: Muon, vertex: Vertex) -> float:
    """Signed transverse impact parameter `d0` of the muon track w.r.t. a vertex.

    The track is taken as a straight line through the reference point
    `(vx, vy, vz)` along the muon momentum.
    """
    if muon.pt <= 0.0:
        return 0.0
    px, py, _ = muon.momentum
    dx = muon.vx - vertex.x
    dy = muon.vy - vertex.y
    return (-dx * py + dy * px) / muon.pt


def longitudinal_impact_parameter(muon: Muon, vertex: Vertex) -> float:
    """Longitudinal impact parameter `dz` at the point of closest transverse approach."""
    if muon.pt <= 0.0:
        return muon.vz - vertex.z
    px, py, pz = muon.momentum
    dx = muon.vx - vertex.x
    dy = muon.vy - vertex.y
    # Move along the track to the transverse point of closest approach.
    return (muon.vz - vertex.z) - (dx * px + dy * py) / muon.pt * (pz / muon.pt)


def impact_factor(dz: float, d0: float) -> float:
    """Euclidean norm of the two impact parameters."""
    return math.hypot(dz, d0)
