import pytest

from macc.fit import linear_regression, piecewise_linear_fit, quadratic_fit


class TestQuadraticFit:
    def test_exact_three_points(self):
        xs = [1.0, 2.0, 3.0]
        ys = [2 + 3 * x + 0.5 * x * x for x in xs]
        fit = quadratic_fit(xs, ys)
        assert fit.a == pytest.approx(2)
        assert fit.b == pytest.approx(3)
        assert fit.c == pytest.approx(0.5)
        assert fit.r2 == pytest.approx(1)

    def test_recovers_coefficients_on_many_points(self):
        xs = [0, 1, 2, 3, 4, 5]
        ys = [-10 + 2 * x + 0.5 * x * x for x in xs]
        fit = quadratic_fit(xs, ys)
        assert (fit.a, fit.b, fit.c) == pytest.approx((-10, 2, 0.5), abs=1e-6)
        assert fit.predict(2.5) == pytest.approx(-10 + 5 + 3.125)

    def test_fewer_than_three_points(self):
        assert quadratic_fit([1, 2], [3, 4]) is None
        assert quadratic_fit([], []) is None

    def test_singular_system(self):
        assert quadratic_fit([5, 5, 5, 5], [1, 2, 3, 4]) is None

    def test_flat_costs_have_no_r2(self):
        fit = quadratic_fit([1, 2, 3, 4], [7, 7, 7, 7])
        assert fit is not None
        assert fit.r2 is None

    def test_noisy_fit_r2_below_one(self):
        fit = quadratic_fit([1, 2, 3, 4, 5], [1, 5, 2, 8, 3])
        assert 0 <= fit.r2 < 1


class TestLinearRegression:
    def test_exact_line(self):
        fit = linear_regression([0, 1, 2], [1, 3, 5])
        assert fit.m == pytest.approx(2)
        assert fit.c == pytest.approx(1)
        assert fit.r2 == pytest.approx(1)


class TestPiecewiseLinearFit:
    def test_fewer_than_four_points(self):
        assert piecewise_linear_fit([(1, -1), (2, 1), (3, 2)]) is None

    def test_two_exact_segments(self):
        pts = [(1, -10), (2, -8), (3, 5), (4, 9)]
        fit = piecewise_linear_fit(pts)
        neg, pos = fit.segments
        assert (neg.fit.m, neg.fit.c) == pytest.approx((2, -12))
        assert (pos.fit.m, pos.fit.c) == pytest.approx((4, -7))
        assert (neg.start_x, neg.end_x) == (1, 2)
        assert (pos.start_x, pos.end_x) == (3, 4)
        assert fit.r2 == pytest.approx(1)
        assert fit.usable
        assert len(fit.fitted_points) == 50
        assert fit.fitted_points[0] == pytest.approx((1, -10))
        assert fit.fitted_points[-1] == pytest.approx((4, 9))

    def test_zero_cost_belongs_to_non_positive_group(self):
        pts = [(1, -4), (2, -2), (3, 0), (4, 5), (5, 10)]
        fit = piecewise_linear_fit(pts)
        neg, pos = fit.segments
        assert neg.end_x == 3
        assert (neg.fit.m, neg.fit.c) == pytest.approx((2, -6))
        assert (pos.fit.m, pos.fit.c) == pytest.approx((5, -15))
        assert fit.r2 == pytest.approx(1)

    def test_single_usable_group(self):
        pts = [(1, -5), (2, 3), (3, 4), (4, 5)]
        fit = piecewise_linear_fit(pts)
        assert len(fit.segments) == 1
        assert fit.segments[0].fit.m == pytest.approx(1)
        # the lone negative point is judged against the positive line
        assert fit.r2 < 1
        assert fit.predict(10) == pytest.approx(11)
