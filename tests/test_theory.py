import math

import pytest

from qnet.distributions import DistributionType
from qnet.theory import QueueModel, erlang_c, parse_model, theoretical_metrics


def test_mm1_reference_case():
    # lambda 30/h, service 1 min -> rho 0.5, Lq = rho^2 / (1 - rho)
    m = theoretical_metrics(30, 60, 1, QueueModel.MMS)
    assert m.is_stable
    assert m.rho == pytest.approx(0.5)
    assert m.lq == pytest.approx(0.5)
    assert m.wq * 60 == pytest.approx(1.0)
    assert m.w * 60 == pytest.approx(2.0)
    assert m.l == pytest.approx(1.0)
    assert m.p0 == pytest.approx(0.5)
    assert not m.is_approximate


@pytest.mark.parametrize(
    "lam, mu, c, expected",
    [
        (5.0, 3.0, 3, {"p0": 0.17266187050359708, "lq": 0.37470023980815353,
                       "wq": 0.0749400479616307, "w": 0.40827338129496404, "l": 2.04136690647482}),
        (9.9, 5.0, 2, {"p0": 0.005025125628140686, "lq": 97.51748743718586,
                       "wq": 9.8502512562814, "w": 10.050251256281399, "l": 99.49748743718585}),
    ],
)
def test_mms_matches_erlang_c_tables(lam, mu, c, expected):
    m = theoretical_metrics(lam, mu, c)
    assert m.rho == pytest.approx(lam / (c * mu))
    for key, value in expected.items():
        assert getattr(m, key) == pytest.approx(value, rel=1e-9)
    assert m.prob_wait == pytest.approx(m.lq * (1 - m.rho) / m.rho, rel=1e-9)


def test_unstable_system_reports_infinities():
    m = theoretical_metrics(10, 5, 1)
    assert not m.is_stable
    assert m.rho == pytest.approx(2.0)
    assert m.p0 == 0.0
    assert all(math.isinf(v) for v in (m.lq, m.l, m.wq, m.w))


def test_exactly_saturated_is_unstable():
    assert not theoretical_metrics(20, 10, 2).is_stable


def test_mm1_model_ignores_server_count():
    assert theoretical_metrics(30, 60, 5, QueueModel.MM1).lq == pytest.approx(0.5)


def test_zero_arrivals_gives_empty_system():
    m = theoretical_metrics(0.0, 4.0, 3)
    assert m.is_stable
    assert m.p0 == pytest.approx(1.0)
    assert m.lq == 0.0 and m.wq == 0.0
    assert m.w == pytest.approx(0.25)


def test_erlang_c_bounds():
    assert erlang_c(3.0, 3) == 1.0
    assert erlang_c(0.5, 1) == pytest.approx(0.5)
    # large server counts stay finite
    assert 0.0 < erlang_c(400.0, 420) < 1.0


def test_infinite_server_model():
    m = theoretical_metrics(30, 10, 1, QueueModel.MMINF)
    assert m.l == pytest.approx(3.0)
    assert m.p0 == pytest.approx(math.exp(-3.0))
    assert m.lq == 0.0 and m.wq == 0.0
    assert not m.is_approximate
    g = theoretical_metrics(30, 10, 1, QueueModel.MMINF, arrival_type=DistributionType.DETERMINISTIC)
    assert g.l == pytest.approx(3.0)
    assert g.is_approximate


def test_finite_population_single_machine():
    # N = 1, s = 1: two states, p1 / p0 = r
    r = 0.5
    m = theoretical_metrics(r * 10, 10, 1, QueueModel.MMS_N_POP, population=1)
    assert m.p0 == pytest.approx(1 / (1 + r))
    assert m.l == pytest.approx(r / (1 + r))
    assert m.lq == 0.0
    assert m.lambda_eff == pytest.approx(5 * (1 - m.l))
    assert m.is_stable


def test_finite_population_always_stable_under_overload():
    m = theoretical_metrics(50, 10, 2, QueueModel.MMS_N_POP, population=10)
    assert m.is_stable
    assert 0 < m.l <= 10
    assert m.rho <= 1.0 + 1e-9


def test_finite_capacity_loss_system():
    # M/M/1/1: blocking probability r / (1 + r), no queue
    m = theoretical_metrics(30, 60, 1, QueueModel.MMSK, K=1)
    assert m.p0 == pytest.approx(2 / 3)
    assert m.lambda_eff == pytest.approx(30 * (1 - 1 / 3))
    assert m.lq == pytest.approx(0.0)


def test_finite_capacity_rho_equal_one_branch():
    # M/M/1/3 with rho = 1: states equally likely, Lq = (1 + 2) / 4
    m = theoretical_metrics(10, 10, 1, QueueModel.MMSK, K=3)
    assert m.p0 == pytest.approx(0.25)
    assert m.lq == pytest.approx(0.75)
    assert m.is_stable


def test_finite_capacity_matches_state_sum():
    lam, mu, s, K = 40.0, 15.0, 2, 6
    m = theoretical_metrics(lam, mu, s, QueueModel.MMSK, K=K)
    r = lam / mu
    w = [r ** n / math.factorial(n) if n <= s else r ** s / math.factorial(s) * (r / s) ** (n - s)
         for n in range(K + 1)]
    probs = [x / sum(w) for x in w]
    assert m.lq == pytest.approx(sum((n - s) * p for n, p in enumerate(probs) if n > s))
    assert m.lambda_eff == pytest.approx(lam * (1 - probs[K]))


def test_finite_models_need_limits():
    with pytest.raises(ValueError):
        theoretical_metrics(10, 20, 1, QueueModel.MMSK)
    with pytest.raises(ValueError):
        theoretical_metrics(10, 20, 1, QueueModel.MMS_N_POP)


def test_md1_is_exact_pollaczek_khinchine():
    m = theoretical_metrics(30, 60, 1, service_type=DistributionType.DETERMINISTIC)
    # P-K: Lq = rho^2 (1 + cs2) / (2 (1 - rho)) with cs2 = 0
    assert m.lq == pytest.approx(0.25)
    assert not m.is_approximate
    assert "Pollaczek" in m.note


def test_gg_s_uses_allen_cunneen_factor():
    base = theoretical_metrics(100, 40, 3)
    m = theoretical_metrics(100, 40, 3, arrival_type=DistributionType.ERLANG, arrival_k=2,
                            service_type=DistributionType.UNIFORM)
    assert m.lq == pytest.approx(base.lq * (0.5 + 1 / 3) / 2)
    assert m.is_approximate


def test_heavy_traffic_estimate():
    # s = 1: rho^2 / (1 - rho), which equals the exact M/M/1 value
    m = theoretical_metrics(30, 60, 1)
    assert m.heavy_traffic_lq == pytest.approx(0.5)
    assert m.heavy_traffic_wq == pytest.approx(0.5 / 30)


def test_breakdowns_scale_service_rate_by_availability():
    m = theoretical_metrics(30, 60, 1, breakdown=True, mtbf=60, mttr=5)
    assert m.rho == pytest.approx(30 / (60 * 60 / 65))
    assert m.is_approximate


def test_trace_inputs_disable_the_model():
    m = theoretical_metrics(30, 60, 1, arrival_type=DistributionType.TRACE)
    assert m.is_approximate and m.is_stable
    assert m.lq == 0.0


@pytest.mark.parametrize("lam, mu, s", [(-1, 5, 1), (5, 0, 1), (5, 5, 0)])
def test_invalid_parameters_raise(lam, mu, s):
    with pytest.raises(ValueError):
        theoretical_metrics(lam, mu, s)


def test_parse_model():
    assert parse_model("M/M/s/K") is QueueModel.MMSK
    assert parse_model("MMINF") is QueueModel.MMINF
