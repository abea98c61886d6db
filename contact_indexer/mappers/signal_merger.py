from contact_indexer.schemas.contact import ExtractionResult, PageSignals, SocialLinks


def _merge_socials(current: SocialLinks, found: SocialLinks) -> SocialLinks:
    updates = {
        platform: url
        for platform, url in found.model_dump().items()
        if url and not getattr(current, platform)
    }
    return current.model_copy(update=updates) if updates else current


def merge_signals(result: ExtractionResult, signals: PageSignals) -> ExtractionResult:
    """Fold one page's signals into the running aggregate.

    Phones are unioned in discovery order, socials only fill empty slots, and
    address/coords are kept from the earliest page that resolved them.
    """
    return result.model_copy(
        update={
            "phones": list(dict.fromkeys([*result.phones, *signals.phones])),
            "socials": _merge_socials(result.socials, signals.socials),
            "address": result.address or signals.address,
            "coords": result.coords or signals.coords,
        }
    )


def location_resolved(result: ExtractionResult) -> bool:
    return bool(result.address) and result.coords is not None
