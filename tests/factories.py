from contact_indexer.schemas.contact import Coords, ExtractionResult, SocialLinks, SourceEntry


def make_entry(url: str, commercial: str = "", legal: str = "", alt: list[str] | None = None) -> SourceEntry:
    return SourceEntry(url=url, commercial_name=commercial, legal_name=legal, alt_names=alt or [])


def make_result(
    url: str,
    phones: list[str] | None = None,
    address: str | None = None,
    coords: tuple[float, float] | None = None,
    socials: dict[str, str] | None = None,
    success: bool = True,
    error: str = "",
) -> ExtractionResult:
    return ExtractionResult(
        url=url,
        phones=phones or [],
        socials=SocialLinks(**(socials or {})),
        address=address,
        coords=Coords(lat=coords[0], lng=coords[1]) if coords else None,
        success=success,
        error=error,
    )
