from __future__ import annotations

import code_owners.api as api


def test_api_surface_exports_expected_symbols() -> None:
    expected = {
        "ApprovalEngine",
        "OwnerConfigHierarchy",
        "OwnerResolver",
        "OwnerSuggester",
        "ReviewerAddedNotifier",
        "get_config_backend",
        "register_config_backend",
        "CodeOwnersError",
        "OwnerConfig",
        "OwnerStatus",
    }
    exported = set(getattr(api, "__all__", ()))
    assert expected.issubset(exported)
    for symbol in exported:
        assert hasattr(api, symbol)
