"""
Tests for stakepool/metrics.py
"""

from stakepool.metrics import LedgerMetrics
from stakepool.ledger.records import PoolRecord


def create_pool(**kwargs) -> PoolRecord:
    defaults = dict(initialized=True, total_staked=1_000, epoch_reward=100, epoch_id=2)
    defaults.update(kwargs)
    return PoolRecord(**defaults)


class TestLedgerMetrics:
    """Tests for LedgerMetrics."""

    def test_record_success(self):
        """Test counters and gauges after a success."""
        metrics = LedgerMetrics()
        metrics.record_success("deposit", 250, create_pool())
        metrics.record_success("deposit", 50, create_pool())
        assert metrics.count("deposit") == 2
        stats = metrics.get_stats()
        assert stats["amounts"]["deposit"] == 300
        assert stats["total_staked"] == 1_000
        assert stats["epoch_id"] == 2

    def test_record_failure(self):
        """Test that failures are counted by kind."""
        metrics = LedgerMetrics()
        metrics.record_failure("claim", "AlreadyClaimed")
        assert metrics.count("claim", "AlreadyClaimed") == 1
        assert metrics.count("claim") == 0

    def test_collect_format(self):
        """Test Prometheus text output."""
        metrics = LedgerMetrics()
        metrics.record_success("claim", 25, create_pool())
        output = metrics.collect()
        assert "# TYPE stakepool_instructions_total counter" in output
        assert 'stakepool_instructions_total{operation="claim",outcome="ok"} 1' in output
        assert 'stakepool_transferred_amount_total{operation="claim"} 25' in output
        assert "stakepool_total_staked 1000" in output
        assert "stakepool_epoch_reward 100" in output
        assert output.endswith("\n")

    def test_reset_counters(self):
        """Test that counters clear but gauges stay."""
        metrics = LedgerMetrics()
        metrics.record_success("withdraw", 10, create_pool())
        metrics.reset_counters()
        assert metrics.count("withdraw") == 0
        assert metrics.get_stats()["total_staked"] == 1_000
