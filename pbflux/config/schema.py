"""
Configuration schema for the face flux kernels.

Dataclass-based configuration that can be loaded from YAML or constructed
programmatically. The kernels themselves only ever see the immutable
``SchemeConfig`` produced by ``FluxSimulationConfig.to_scheme_config``.
"""

from dataclasses import dataclass, field, asdict

from pbflux.constants import PARAM_P, VALID_DIMS


class FluxConfigurationError(ValueError):
    """Raised when a kernel or configuration violates the construction contract."""


# Time integration schemes understood by the solver driving the kernels.
# Only the implicit Euler scheme requests flux Jacobians.
TIME_INTEGRATION_SCHEMES = ("euler_implicit", "euler_explicit", "runge_kutta_explicit")

SCHEME_KINDS = ("upwind", "jst", "lax", "pressure_source")


@dataclass(frozen=True)
class SchemeConfig:
    """Per-kernel constants, fixed at construction.

    Attributes
    ----------
    implicit : bool
        Produce flux Jacobians (implicit Euler time integration).
    gravity : bool
        Gravity force enabled. Carried for body-force source terms;
        the face kernels do not use it.
    froude : float
        Froude number, carried alongside ``gravity``.
    kappa_2, kappa_4 : float
        JST 2nd and 4th difference dissipation coefficients.
    kappa_0 : float
        Lax 1st order dissipation coefficient.
    param_p : float
        Exponent of the stretching factor (fixed 0.3).
    """

    implicit: bool = False
    gravity: bool = False
    froude: float = 0.0
    kappa_2: float = 0.5
    kappa_4: float = 0.02
    kappa_0: float = 0.15
    param_p: float = PARAM_P


@dataclass
class SchemeSettings:
    """Scheme selection."""

    kind: str = "jst"                      # upwind | jst | lax | pressure_source
    n_dim: int = 2                         # Spatial dimension (2 or 3)
    time_integration: str = "euler_implicit"

    def validate(self) -> None:
        """Check the selection against the supported schemes and dimensions."""
        if self.kind not in SCHEME_KINDS:
            raise FluxConfigurationError(
                f"Unknown scheme kind: {self.kind!r}. Expected one of {SCHEME_KINDS}")
        if self.n_dim not in VALID_DIMS:
            raise FluxConfigurationError(f"n_dim must be 2 or 3, got {self.n_dim}")
        if self.time_integration not in TIME_INTEGRATION_SCHEMES:
            raise FluxConfigurationError(
                f"Unknown time integration: {self.time_integration!r}. "
                f"Expected one of {TIME_INTEGRATION_SCHEMES}")

    @property
    def implicit(self) -> bool:
        return self.time_integration == "euler_implicit"


@dataclass
class FlowConfig:
    """Flow physics configuration."""

    gravity: bool = False
    froude: float = 0.0


@dataclass
class NumericsConfig:
    """Artificial dissipation coefficients."""

    kappa_2: float = 0.5       # JST 2nd-difference coefficient
    kappa_4: float = 0.02      # JST 4th-difference coefficient (typically 1/64-1/32)
    kappa_0: float = 0.15      # Lax 1st-order coefficient


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    show_time: bool = True


@dataclass
class FluxSimulationConfig:
    """Complete configuration of a flux kernel run."""

    scheme: SchemeSettings = field(default_factory=SchemeSettings)
    flow: FlowConfig = field(default_factory=FlowConfig)
    numerics: NumericsConfig = field(default_factory=NumericsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_scheme_config(self) -> SchemeConfig:
        """Freeze the settings the kernels read at construction."""
        self.scheme.validate()

        return SchemeConfig(
            implicit=self.scheme.implicit,
            gravity=self.flow.gravity,
            froude=self.flow.froude,
            kappa_2=self.numerics.kappa_2,
            kappa_4=self.numerics.kappa_4,
            kappa_0=self.numerics.kappa_0,
        )

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)
