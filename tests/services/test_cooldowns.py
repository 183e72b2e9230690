"""
Tests for the timestamp cache, cooldown ledger and registration prompt throttle.
"""
from gagwatch.models.stock_data import StockItem
from gagwatch.services.cooldown_ledger import CooldownLedger
from gagwatch.services.prompt_throttle import RegistrationPromptThrottle
from gagwatch.services.timestamp_cache import TimestampCache

HOUR_MS = 3600 * 1000


class TestTimestampCache:
    """Tests for TimestampCache."""

    def test_mark_and_elapsed(self, fake_clock):
        cache = TimestampCache(fake_clock, window_ms=1000)
        assert cache.elapsed("a") is None

        cache.mark("a")
        fake_clock.advance(milliseconds=400)

        assert cache.elapsed("a") == 400
        assert cache.is_active("a")
        assert not cache.is_expired("a")

    def test_window_boundaries(self, fake_clock):
        cache = TimestampCache(fake_clock, window_ms=1000)
        cache.mark("a")

        fake_clock.advance(milliseconds=1000)
        # exactly one window: no longer active, not yet expired
        assert not cache.is_active("a")
        assert not cache.is_expired("a")

        fake_clock.advance(milliseconds=1)
        assert cache.is_expired("a")

    def test_mark_never_moves_backwards(self, fake_clock):
        cache = TimestampCache(fake_clock, window_ms=1000, entries={"a": fake_clock.now_ms() + 5000})
        cache.mark("a")
        assert cache.get("a") == fake_clock.now_ms() + 5000

    def test_clear(self, fake_clock):
        cache = TimestampCache(fake_clock, window_ms=1000)
        cache.mark("a")
        cache.clear("a")
        cache.clear("missing")
        assert cache.get("a") is None
        assert len(cache) == 0


class TestCooldownLedger:
    """Tests for CooldownLedger."""

    def test_first_sighting_notifies(self, fake_clock):
        ledger = CooldownLedger({}, fake_clock)
        assert ledger.should_notify(StockItem("Carrot", 5))

    def test_out_of_stock_never_notifies(self, fake_clock):
        ledger = CooldownLedger({}, fake_clock)
        assert not ledger.should_notify(StockItem("Carrot", 0))

    def test_cooldown_then_reset(self, fake_clock):
        ledger = CooldownLedger({}, fake_clock)
        carrot = StockItem("Carrot", 5)
        ledger.mark("Carrot")

        fake_clock.advance(hours=23, minutes=59)
        assert not ledger.should_notify(carrot)

        fake_clock.advance(minutes=1)
        # exactly 24 hours is still inside the cooldown
        assert not ledger.should_notify(carrot)

        fake_clock.advance(milliseconds=1)
        assert ledger.should_notify(carrot)

    def test_other_items_unaffected(self, fake_clock):
        ledger = CooldownLedger({"Carrot": fake_clock.now_ms()}, fake_clock)
        assert not ledger.should_notify(StockItem("Carrot", 5))
        assert ledger.should_notify(StockItem("Tomato", 5))

    def test_profile_dict_not_mutated(self, fake_clock):
        entries = {"Carrot": fake_clock.now_ms() - 25 * HOUR_MS}
        ledger = CooldownLedger(entries, fake_clock)

        ledger.mark("Carrot")
        ledger.mark("Tomato")

        assert entries == {"Carrot": fake_clock.now_ms() - 25 * HOUR_MS}
        assert ledger.to_dict() == {"Carrot": fake_clock.now_ms(), "Tomato": fake_clock.now_ms()}
        assert ledger.last_notified("Tomato") == fake_clock.now_ms()


class TestRegistrationPromptThrottle:
    """Tests for RegistrationPromptThrottle."""

    def test_two_prompts_within_window_send_once(self, fake_clock):
        throttle = RegistrationPromptThrottle(fake_clock)

        assert throttle.try_prompt("123") is True
        fake_clock.advance(minutes=1)
        assert throttle.try_prompt("123") is False

    def test_prompt_allowed_again_after_window(self, fake_clock):
        throttle = RegistrationPromptThrottle(fake_clock)
        throttle.try_prompt("123")

        fake_clock.advance(minutes=4, seconds=59)
        assert throttle.try_prompt("123") is False

        fake_clock.advance(seconds=1)
        assert throttle.try_prompt("123") is True

    def test_suppressed_attempt_does_not_extend_window(self, fake_clock):
        throttle = RegistrationPromptThrottle(fake_clock)
        throttle.try_prompt("123")
        fake_clock.advance(minutes=4)
        throttle.try_prompt("123")

        fake_clock.advance(minutes=1)
        assert throttle.try_prompt("123") is True

    def test_clear_allows_immediate_prompt(self, fake_clock):
        throttle = RegistrationPromptThrottle(fake_clock)
        throttle.try_prompt("123")
        throttle.clear("123")
        assert throttle.try_prompt("123") is True

    def test_recipients_are_independent(self, fake_clock):
        throttle = RegistrationPromptThrottle(fake_clock)
        assert throttle.try_prompt("1")
        assert throttle.try_prompt("2")
        assert len(throttle) == 2
