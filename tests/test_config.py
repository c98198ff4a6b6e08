"""Tests for the configuration layer."""

import pytest

from simpleflux.config import (
    BranchGroup,
    ConfigurationError,
    ConfigurationWarning,
    FluxConfig,
    create_default_config,
    create_validated_config,
    get_default,
    get_defaults,
    reload_defaults,
    validate_config,
    warn_if_unsafe,
)
from simpleflux.config.defaults import (
    DEFAULT_BRANCH_REQUEST,
    DEFAULT_ENTRY_REUSE,
    DEFAULT_NUM_CYCLES,
    DEFAULT_REJECT_WARNING_INTERVAL,
)
from simpleflux.config.yaml_loader import DEFAULTS_ENV_VAR


class TestYamlDefaults:
    """Tests for defaults.yaml access."""

    def test_yaml_matches_module_defaults(self):
        """Test the shipped YAML agrees with the module constants."""
        assert get_default("driver.branch_request") == DEFAULT_BRANCH_REQUEST
        assert get_default("driver.num_cycles") == DEFAULT_NUM_CYCLES
        assert get_default("driver.entry_reuse") == DEFAULT_ENTRY_REUSE
        assert get_default("driver.reject_warning_interval") == DEFAULT_REJECT_WARNING_INTERVAL

    def test_null_and_missing_yield_fallback(self):
        """Test null values and unknown keys return the fallback."""
        assert get_default("driver.max_energy", 42.0) == 42.0
        assert get_default("driver.no_such_key", "fallback") == "fallback"
        assert get_default("driver.num_cycles.deeper", 7) == 7

    def test_get_defaults_returns_copy(self):
        """Test mutating the returned tree does not leak into lookups."""
        tree = get_defaults()
        tree["driver"]["num_cycles"] = 99

        assert get_default("driver.num_cycles") == DEFAULT_NUM_CYCLES

    def test_env_override(self, tmp_path, monkeypatch):
        """Test SIMPLEFLUX_DEFAULTS_PATH points the loader at another file."""
        custom = tmp_path / "custom.yaml"
        custom.write_text("driver:\n  num_cycles: 4\n  entry_reuse: 2\n")
        monkeypatch.setenv(DEFAULTS_ENV_VAR, str(custom))
        reload_defaults()
        try:
            config = create_default_config()
            assert config.num_cycles == 4
            assert config.entry_reuse == 2
            # Keys absent from the custom file fall back to the module defaults
            assert config.branch_request == DEFAULT_BRANCH_REQUEST
        finally:
            monkeypatch.delenv(DEFAULTS_ENV_VAR)
            reload_defaults()


class TestBranchGroup:
    """Tests for branch request parsing."""

    def test_parse_full_request(self):
        """Test the default request yields all three groups in order."""
        groups = BranchGroup.parse_request("entry,numi,aux")

        assert groups == [BranchGroup.ENTRY, BranchGroup.NUMI, BranchGroup.AUX]

    def test_parse_tolerates_spaces_case_and_duplicates(self):
        """Test whitespace, case and repeated names are normalized."""
        groups = BranchGroup.parse_request(" Entry , aux,,entry ")

        assert groups == [BranchGroup.ENTRY, BranchGroup.AUX]

    def test_unknown_group(self):
        """Test an unknown name raises ValueError."""
        with pytest.raises(ValueError):
            BranchGroup.parse_request("entry,dk2nu")


class TestFluxConfig:
    """Tests for FluxConfig validation and conversion."""

    def test_default_config_is_valid(self):
        """Test the default configuration validates cleanly."""
        config = create_default_config()

        assert config.validate() == []
        assert config.flux_particles == []
        assert config.max_energy is None
        assert config.gen_weighted is False

    @pytest.mark.parametrize(
        "field,value",
        [
            ("num_cycles", -1),
            ("entry_reuse", 0),
            ("max_energy", 0.0),
            ("branch_request", "numi,aux"),
            ("branch_request", "entry,bogus"),
            ("reject_warning_interval", 0),
            ("window_tolerance", -1.0),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test each invalid option produces one error message."""
        config = create_default_config()
        setattr(config, field, value)

        errors = config.validate()

        assert len(errors) == 1

    def test_zero_cycles_is_valid(self):
        """Test num_cycles=0 (unbounded) is accepted."""
        config = create_default_config()
        config.num_cycles = 0

        assert config.validate() == []

    def test_dict_round_trip(self):
        """Test to_dict/from_dict preserve every option."""
        config = create_default_config()
        config.flux_particles = [14, -14]
        config.num_cycles = 3
        config.upstream_z = -10.0

        restored = FluxConfig.from_dict(config.to_dict())

        assert restored == config

    def test_from_dict_unknown_key(self):
        """Test from_dict rejects unknown options."""
        with pytest.raises(ValueError, match="Unknown configuration parameter"):
            FluxConfig.from_dict({"n_cycles": 2})


class TestValidation:
    """Tests for validate_config, warn_if_unsafe and create_validated_config."""

    def test_validate_config_raises(self):
        """Test validation failure raises ConfigurationError by default."""
        config = create_default_config()
        config.entry_reuse = 0

        with pytest.raises(ConfigurationError, match="entry_reuse"):
            validate_config(config)

    def test_validate_config_no_raise(self):
        """Test raise_on_error=False returns the error list."""
        config = create_default_config()
        config.num_cycles = -2

        is_valid, errors = validate_config(config, raise_on_error=False)

        assert not is_valid
        assert len(errors) == 1

    def test_create_validated_config(self):
        """Test overrides are applied and validated."""
        config = create_validated_config(num_cycles=2, flux_particles=[14])

        assert config.num_cycles == 2
        assert config.flux_particles == [14]

        with pytest.raises(ConfigurationError):
            create_validated_config(entry_reuse=0)

        with pytest.raises(ValueError):
            create_validated_config(bogus=1)

    def test_warn_unbounded_cycles(self):
        """Test unbounded cycling is reported as a ConfigurationWarning."""
        config = create_default_config()
        config.num_cycles = 0

        with pytest.warns(ConfigurationWarning, match="unbounded"):
            messages = warn_if_unsafe(config)

        assert len(messages) == 1

    def test_no_warning_for_defaults(self, recwarn):
        """Test the default configuration raises no warnings."""
        assert warn_if_unsafe(create_default_config()) == []
        assert len(recwarn) == 0
