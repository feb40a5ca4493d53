"""Unit tests for batch scheduling policies."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.rate_limiter import FixedDelayPolicy, NoDelayPolicy, TokenBucketPolicy


class FakeClock:
    """Manual clock advanced by the fake sleep."""
    
    def __init__(self):
        self.now = 0.0
        self.sleeps = []
    
    def __call__(self):
        return self.now
    
    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestFixedDelayPolicy:
    """Test suite for FixedDelayPolicy."""
    
    def test_sleeps_between_batches(self):
        sleep = Mock()
        policy = FixedDelayPolicy(0.1, sleep=sleep)
        
        policy.wait(100, is_last=False)
        
        sleep.assert_called_once_with(0.1)
    
    def test_no_sleep_after_last_batch(self):
        sleep = Mock()
        policy = FixedDelayPolicy(0.1, sleep=sleep)
        
        policy.wait(100, is_last=True)
        
        sleep.assert_not_called()
    
    def test_zero_delay(self):
        sleep = Mock()
        FixedDelayPolicy(0, sleep=sleep).wait(100, is_last=False)
        sleep.assert_not_called()
    
    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            FixedDelayPolicy(-1)


class TestNoDelayPolicy:
    
    def test_never_waits(self):
        assert NoDelayPolicy().wait(10 ** 9, is_last=False) is None


class TestTokenBucketPolicy:
    """Test suite for TokenBucketPolicy."""
    
    def test_within_budget_does_not_sleep(self):
        clock = FakeClock()
        policy = TokenBucketPolicy(600, sleep=clock.sleep, clock=clock)
        
        policy.wait(200, is_last=False)
        policy.wait(200, is_last=False)
        
        assert clock.sleeps == []
    
    def test_sleeps_until_budget_refills(self):
        clock = FakeClock()
        policy = TokenBucketPolicy(600, sleep=clock.sleep, clock=clock)  # 10 tokens/s
        
        policy.wait(500, is_last=False)
        policy.wait(200, is_last=False)  # 100 tokens in debt
        
        assert clock.sleeps == [pytest.approx(10.0)]
    
    def test_refills_over_time(self):
        clock = FakeClock()
        policy = TokenBucketPolicy(600, sleep=clock.sleep, clock=clock)
        
        policy.wait(600, is_last=False)
        clock.now += 60.0
        policy.wait(600, is_last=False)
        
        assert clock.sleeps == []
    
    def test_last_batch_never_sleeps(self):
        clock = FakeClock()
        policy = TokenBucketPolicy(600, sleep=clock.sleep, clock=clock)
        
        policy.wait(5000, is_last=True)
        
        assert clock.sleeps == []
    
    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            TokenBucketPolicy(0)
