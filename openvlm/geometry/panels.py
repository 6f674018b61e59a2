"""
Panel records for the vortex lattice.

A surface is stored as a single panel object whose fields are arrays with a
leading (chordwise, spanwise) grid shape, e.g. ``rtl[nc, ns, 3]``.  Indexing a
surface (``surface[i, j]``) returns the same kind of object for a sub-grid or
a single panel, so everything here works for one panel or a whole surface.

Exactly two panel shapes exist:

* ``Horseshoe``: a bound vortex along the quarter chord whose legs run back to
  the trailing edge and from there to infinity.
* ``Ring``: a closed vortex ring; rings on the trailing edge shed a pair of
  semi-infinite trailing vortices in place of their bottom filament.

Both expose the same accessors, which is all the rest of the package uses.
"""
import numpy as np

from openvlm.utils.vector_algebra import flipy


# Tolerance used to decide whether a point lies on the y = 0 plane.
eps = np.finfo(float).eps

def not_on_symmetry_plane(r1, r2, tol=eps):
    """
    True where the segment from r1 to r2 is not contained in the y = 0 plane,
    i.e. where a mirrored copy of it is distinct from the original.
    """
    return np.logical_not((np.abs(r1[..., 1]) <= tol) & (np.abs(r2[..., 1]) <= tol))


class _Panel(object):

    _point_fields = ()
    _vector_fields = ()
    _scalar_fields = ()

    @property
    def shape(self):
        return self.rcp.shape[:-1]

    @property
    def size(self):
        return int(np.prod(self.shape))

    def __len__(self):
        return self.shape[0]

    def __getitem__(self, index):
        kwargs = {}
        for name in self._point_fields + self._vector_fields + self._scalar_fields:
            kwargs[name] = getattr(self, name)[index]
        return self.__class__(**kwargs)

    def replace(self, **fields):
        """
        Return a copy of the panel(s) with some of the fields replaced.
        """
        kwargs = {}
        for name in self._point_fields + self._vector_fields + self._scalar_fields:
            kwargs[name] = fields.get(name, getattr(self, name))
        return self.__class__(**kwargs)

    def _flip_span(self, array):
        # Reverse the spanwise index so a reflected surface keeps its panels
        # ordered from left to right.
        ndim = len(self.shape)
        if ndim == 0:
            return array
        return np.flip(array, axis=ndim - 1)

    def controlpoint(self):
        return self.rcp

    def normal(self):
        return self.ncp

    def translate(self, r):
        """
        Return a copy of the panel(s) translated by the vector r.
        """
        r = np.asarray(r, dtype=float)
        fields = dict((name, getattr(self, name) + r) for name in self._point_fields)
        return self.replace(**fields)

    def rotate(self, R, r=None):
        """
        Return a copy of the panel(s) rotated by the matrix R about the point r
        (the origin by default).
        """
        R = np.asarray(R, dtype=float)
        r = np.zeros(3) if r is None else np.asarray(r, dtype=float)
        fields = {}
        for name in self._point_fields:
            fields[name] = np.einsum('ij,...j->...i', R, getattr(self, name) - r) + r
        for name in self._vector_fields:
            fields[name] = np.einsum('ij,...j->...i', R, getattr(self, name))
        return self.replace(**fields)

    def top_vector(self):
        return self.top_right() - self.top_left()

    def left_center(self):
        return 0.5 * (self.top_left() + self.bottom_left())

    def right_center(self):
        return 0.5 * (self.top_right() + self.bottom_right())

    def endpoints(self):
        """
        Corners of the bound vortex filaments: top left, top right, bottom
        left and bottom right.
        """
        return self.top_left(), self.top_right(), self.bottom_left(), self.bottom_right()

    def reflected_endpoints(self):
        """
        Corners of the mirror image of the panel(s) across y = 0, ordered so
        the mirrored circulation produces the same lift as the original.
        """
        rtl, rtr, rbl, rbr = self.endpoints()
        return flipy(rtr), flipy(rtl), flipy(rbr), flipy(rbl)

    def not_on_symmetry_plane(self, tol=eps):
        return not_on_symmetry_plane(self.top_left(), self.top_right(), tol)

    def trefftz_normal(self):
        """
        Normal of the trailing vortex sheet element (scaled by its length) in
        the y-z plane.
        """
        rl, rr = self.trefftz_endpoints()
        dr = rr - rl
        return np.stack([np.zeros_like(dr[..., 0]), -dr[..., 2], dr[..., 1]], axis=-1)


class Horseshoe(_Panel):
    """
    Horseshoe vortex panel(s).

    Parameters
    ----------
    rl[..., 3] : numpy array
        Left end of the bound vortex.
    rc[..., 3] : numpy array
        Center of the bound vortex.
    rr[..., 3] : numpy array
        Right end of the bound vortex.
    rcp[..., 3] : numpy array
        Control point.
    ncp[..., 3] : numpy array
        Unit normal at the control point.
    xl_te[...] : numpy array
        x-distance from the left end of the bound vortex to the trailing edge.
    xc_te[...] : numpy array
        x-distance from the center of the bound vortex to the trailing edge.
    xr_te[...] : numpy array
        x-distance from the right end of the bound vortex to the trailing edge.
    core_size[...] : numpy array
        Finite core size.
    """

    _point_fields = ('rl', 'rc', 'rr', 'rcp')
    _vector_fields = ('ncp',)
    _scalar_fields = ('xl_te', 'xc_te', 'xr_te', 'core_size')

    def __init__(self, rl, rc, rr, rcp, ncp, xl_te, xc_te, xr_te, core_size=0.):
        self.rl = np.asarray(rl, dtype=float)
        self.rc = np.asarray(rc, dtype=float)
        self.rr = np.asarray(rr, dtype=float)
        self.rcp = np.asarray(rcp, dtype=float)
        self.ncp = np.asarray(ncp, dtype=float)
        shape = self.rcp.shape[:-1]
        self.xl_te = np.broadcast_to(np.asarray(xl_te, dtype=float), shape).copy()
        self.xc_te = np.broadcast_to(np.asarray(xc_te, dtype=float), shape).copy()
        self.xr_te = np.broadcast_to(np.asarray(xr_te, dtype=float), shape).copy()
        self.core_size = np.broadcast_to(np.asarray(core_size, dtype=float), shape).copy()

    @property
    def trailing(self):
        # every horseshoe sheds its own pair of trailing vortices
        return np.ones(self.shape, dtype=bool)

    def top_left(self):
        return self.rl

    def top_center(self):
        return self.rc

    def top_right(self):
        return self.rr

    def bottom_left(self):
        return self.rl + _along_x(self.xl_te)

    def bottom_center(self):
        return self.rc + _along_x(self.xc_te)

    def bottom_right(self):
        return self.rr + _along_x(self.xr_te)

    def left_center(self):
        return self.rl + _along_x(0.5 * self.xl_te)

    def right_center(self):
        return self.rr + _along_x(0.5 * self.xr_te)

    def left_vector(self):
        return -_along_x(self.xl_te)

    def right_vector(self):
        return _along_x(self.xr_te)

    def trefftz_endpoints(self):
        return self.bottom_left(), self.bottom_right()

    def trefftz_center(self):
        return self.bottom_center()

    def bound_vertices(self):
        """
        Bound vortex end points of each chordwise row of horseshoes, shared by
        spanwise neighbours: array[nc, ns + 1, 3].
        """
        return np.concatenate([self.rl, self.rr[..., -1:, :]], axis=-2)

    def trailing_edge_offsets(self):
        """
        x-distance from each bound vertex to the trailing edge: array[nc, ns + 1].
        """
        return np.concatenate([self.xl_te, self.xr_te[..., -1:]], axis=-1)

    def reflect(self):
        """
        Return the mirror image of the panel(s) across the y = 0 plane.
        """
        flip = self._flip_span
        return Horseshoe(
            rl=flip(flipy(self.rr)),
            rc=flip(flipy(self.rc)),
            rr=flip(flipy(self.rl)),
            rcp=flip(flipy(self.rcp)),
            ncp=flip(flipy(self.ncp)),
            xl_te=flip(self.xr_te),
            xc_te=flip(self.xc_te),
            xr_te=flip(self.xl_te),
            core_size=flip(self.core_size),
        )


class Ring(_Panel):
    """
    Vortex ring panel(s).

    Parameters
    ----------
    rtl[..., 3] : numpy array
        Top left corner.
    rtc[..., 3] : numpy array
        Center of the top filament.
    rtr[..., 3] : numpy array
        Top right corner.
    rbl[..., 3] : numpy array
        Bottom left corner.
    rbc[..., 3] : numpy array
        Center of the bottom filament.
    rbr[..., 3] : numpy array
        Bottom right corner.
    rcp[..., 3] : numpy array
        Control point.
    ncp[..., 3] : numpy array
        Unit normal at the control point.
    core_size[...] : numpy array
        Finite core size.
    trailing[...] : numpy array of bool
        Flags the panels on the trailing edge of their surface.
    """

    _point_fields = ('rtl', 'rtc', 'rtr', 'rbl', 'rbc', 'rbr', 'rcp')
    _vector_fields = ('ncp',)
    _scalar_fields = ('core_size', 'trailing')

    def __init__(self, rtl, rtc, rtr, rbl, rbc, rbr, rcp, ncp, core_size=0., trailing=False):
        self.rtl = np.asarray(rtl, dtype=float)
        self.rtc = np.asarray(rtc, dtype=float)
        self.rtr = np.asarray(rtr, dtype=float)
        self.rbl = np.asarray(rbl, dtype=float)
        self.rbc = np.asarray(rbc, dtype=float)
        self.rbr = np.asarray(rbr, dtype=float)
        self.rcp = np.asarray(rcp, dtype=float)
        self.ncp = np.asarray(ncp, dtype=float)
        shape = self.rcp.shape[:-1]
        self.core_size = np.broadcast_to(np.asarray(core_size, dtype=float), shape).copy()
        self.trailing = np.broadcast_to(np.asarray(trailing, dtype=bool), shape).copy()

    def top_left(self):
        return self.rtl

    def top_center(self):
        return self.rtc

    def top_right(self):
        return self.rtr

    def bottom_left(self):
        return self.rbl

    def bottom_center(self):
        return self.rbc

    def bottom_right(self):
        return self.rbr

    def left_vector(self):
        return self.rtl - self.rbl

    def right_vector(self):
        return self.rbr - self.rtr

    def trefftz_endpoints(self):
        return self.rbl, self.rbr

    def trefftz_center(self):
        return self.rbc

    def area(self):
        """
        Area of the vortex ring, from the cross product of its diagonals.
        """
        d1 = self.rbr - self.rtl
        d2 = self.rbl - self.rtr
        return 0.5 * np.sum(np.cross(d1, d2) ** 2, axis=-1) ** 0.5

    def vertices(self):
        """
        Corner lattice of a surface of rings, shared by neighbouring panels:
        array[nc + 1, ns + 1, 3].
        """
        top = np.concatenate([self.rtl, self.rtr[:, -1:]], axis=1)
        bottom = np.concatenate([self.rbl[-1:], self.rbr[-1:, -1:]], axis=1)
        return np.concatenate([top, bottom], axis=0)

    def reflect(self):
        """
        Return the mirror image of the panel(s) across the y = 0 plane.
        """
        flip = self._flip_span
        return Ring(
            rtl=flip(flipy(self.rtr)),
            rtc=flip(flipy(self.rtc)),
            rtr=flip(flipy(self.rtl)),
            rbl=flip(flipy(self.rbr)),
            rbc=flip(flipy(self.rbc)),
            rbr=flip(flipy(self.rbl)),
            rcp=flip(flipy(self.rcp)),
            ncp=flip(flipy(self.ncp)),
            core_size=flip(self.core_size),
            trailing=flip(self.trailing),
        )


def _along_x(distance):
    distance = np.asarray(distance, dtype=float)
    result = np.zeros(distance.shape + (3,))
    result[..., 0] = distance
    return result
