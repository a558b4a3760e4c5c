
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import numpy as np
from sklearn.linear_model import LinearRegression
from .config import SINGULAR_TOL, PIECEWISE_STEPS


@dataclass(frozen=True)
class QuadraticFit:
    a: float
    b: float
    c: float
    r2: Optional[float]

    def predict(self, x):
        return self.a + self.b * x + self.c * x * x


def r_squared(ys, yhat) -> Optional[float]:
    ys = np.asarray(ys, dtype=float)
    yhat = np.asarray(yhat, dtype=float)
    sst = float(np.sum((ys - ys.mean()) ** 2))
    if sst <= 0:
        return None
    sse = float(np.sum((ys - yhat) ** 2))
    return 1.0 - sse / sst


def _det3(m) -> float:
    return (m[0][0] * (m[1][1] * m[2][2] - m[1][2] * m[2][1])
            - m[0][1] * (m[1][0] * m[2][2] - m[1][2] * m[2][0])
            + m[0][2] * (m[1][0] * m[2][1] - m[1][1] * m[2][0]))


def quadratic_fit(xs: Sequence[float], ys: Sequence[float]) -> Optional[QuadraticFit]:
    """Least-squares cost = a + b*x + c*x^2 via the normal equations and Cramer's rule.

    Returns None for fewer than 3 points or a numerically singular system.
    """
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    n = len(x)
    if n < 3 or len(y) != n:
        return None

    sx, sx2, sx3, sx4 = x.sum(), (x ** 2).sum(), (x ** 3).sum(), (x ** 4).sum()
    sy, sxy, sx2y = y.sum(), (x * y).sum(), (x ** 2 * y).sum()

    m = np.array([[n, sx, sx2], [sx, sx2, sx3], [sx2, sx3, sx4]])
    rhs = np.array([sy, sxy, sx2y])
    d = _det3(m)
    if abs(d) < SINGULAR_TOL:
        return None

    coeffs = []
    for col in range(3):
        mc = m.copy()
        mc[:, col] = rhs
        coeffs.append(float(_det3(mc) / d))
    a, b, c = coeffs

    return QuadraticFit(a=a, b=b, c=c, r2=r_squared(y, a + b * x + c * x * x))


@dataclass(frozen=True)
class LineFit:
    m: float
    c: float
    r2: Optional[float]

    def predict(self, x):
        return self.m * x + self.c


@dataclass(frozen=True)
class LinearSegment:
    start_x: float
    end_x: float
    fit: LineFit


@dataclass(frozen=True)
class PiecewiseFit:
    segments: Tuple[LinearSegment, ...]
    fitted_points: Tuple[Tuple[float, float], ...]
    r2: Optional[float]

    @property
    def usable(self) -> bool:
        return len(self.fitted_points) >= 2

    def predict(self, x: float) -> float:
        return _segment_at(self.segments, x).fit.predict(x)


def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> LineFit:
    """Ordinary least-squares line through (xs, ys)."""
    x = np.asarray(xs, dtype=float).reshape(-1, 1)
    y = np.asarray(ys, dtype=float)
    model = LinearRegression().fit(x, y)
    return LineFit(m=float(model.coef_[0]), c=float(model.intercept_), r2=r_squared(y, model.predict(x)))


def _segment_at(segments: Sequence[LinearSegment], x: float) -> LinearSegment:
    # the cost <= 0 line runs up to its last point, the cost > 0 line after it
    if len(segments) == 1 or x <= segments[0].end_x:
        return segments[0]
    return segments[-1]


def piecewise_linear_fit(points: Sequence[Tuple[float, float]],
                         steps: int = PIECEWISE_STEPS) -> Optional[PiecewiseFit]:
    """Two-segment fit: one line through the cost <= 0 points, one through the cost > 0 points.

    ``points`` are (x, cost) pairs in curve order. Returns None for fewer than 4 points.
    """
    pts = [(float(x), float(cost)) for x, cost in points]
    if len(pts) < 4:
        return None

    groups = [
        [p for p in pts if p[1] <= 0],
        [p for p in pts if p[1] > 0],
    ]
    segments = []
    fits = []
    for group in groups:
        if len(group) >= 2:
            fit = linear_regression([p[0] for p in group], [p[1] for p in group])
            segments.append(LinearSegment(start_x=group[0][0], end_x=group[-1][0], fit=fit))
            fits.append(fit)
        else:
            fits.append(None)

    if not segments:
        return PiecewiseFit(segments=(), fitted_points=(), r2=None)

    ys, yhat = [], []
    for x, cost in pts:
        fit = fits[0 if cost <= 0 else 1] or _segment_at(segments, x).fit
        ys.append(cost)
        yhat.append(fit.predict(x))

    xs = [p[0] for p in pts]
    grid = np.linspace(min(xs), max(xs), steps)
    fitted = tuple((float(x), float(_segment_at(segments, x).fit.predict(x))) for x in grid)

    return PiecewiseFit(segments=tuple(segments), fitted_points=fitted, r2=r_squared(ys, yhat))
