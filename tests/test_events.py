from promotions.services.events import DiscountEvents, MatchOrderEvent


def test_handlers_run_in_registration_order():
    events = DiscountEvents()
    calls = []
    events.on("custom", lambda event: calls.append("first"))
    events.on("custom", lambda event: calls.append("second"))

    events.trigger("custom", MatchOrderEvent(discount=None))

    assert calls == ["first", "second"]


def test_invalidated_match_stays_invalid():
    events = DiscountEvents()

    def veto(event):
        event.invalidate()

    def restore(event):
        event.is_valid = True

    events.on("match", veto)
    events.on("match", restore)

    assert events.trigger("match", MatchOrderEvent(discount=None)).is_valid is False


def test_off_and_clear():
    events = DiscountEvents()

    def handler(event):
        pass

    events.on("match", handler)
    assert events.has_handlers("match")

    events.off("match", handler)
    assert not events.has_handlers("match")

    events.on("match", handler)
    events.clear()
    assert not events.has_handlers("match")
