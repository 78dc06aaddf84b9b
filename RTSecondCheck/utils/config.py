"""Configuration management for second-check calculations."""

from dataclasses import dataclass
from typing import Optional, Tuple
from pathlib import Path

import yaml

from ..physics_data import DEFAULT_TPR_TABLE, DEFAULT_SCP_TABLE


@dataclass
class SecondCheckConfig:
    """Configuration for beam-on time verification.
    
    Defaults describe the ViewRay Co-60 treatment system.
    
    Attributes:
        calibration_constant: Dose rate K at calibration geometry in Gy/min,
            used when no source tracking record is supplied
        couch_factor: Couch attenuation factor applied inside couch_angle_range
        couch_angle_range: Closed gantry angle interval (deg) where the beam
            passes through the couch
        source_axis_distance: Default Source-Axis Distance in cm
        source_calibration_distance: Source-Calibration Distance in cm
        tpr_table_path: Path to TPR table CSV
        scp_table_path: Path to Scp table CSV
        tolerance: Relative difference accepted by the cross-check (0.03 = 3%)
        max_backward_days: How far a calculation date may precede the source
            reference date before the record is considered stale
        dose_rate_per_activity: Gy/min per unit activity, used when the source
            report lists activity but no calibration dose rate
        mu_per_second: Monitor units per second of beam-on time, enables
            comparison against planned MU
        log_file: Optional log file path
    """
    calibration_constant: float = 1.85
    couch_factor: float = 1 / 1.21
    couch_angle_range: Tuple[float, float] = (130.0, 240.0)
    source_axis_distance: float = 105.0
    source_calibration_distance: float = 100.0 + 5.0
    tpr_table_path: Optional[str] = None
    scp_table_path: Optional[str] = None
    tolerance: float = 0.03
    max_backward_days: float = 30.0
    dose_rate_per_activity: Optional[float] = None
    mu_per_second: Optional[float] = None
    log_file: Optional[str] = None
    
    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.tpr_table_path is None:
            self.tpr_table_path = DEFAULT_TPR_TABLE
        if self.scp_table_path is None:
            self.scp_table_path = DEFAULT_SCP_TABLE
        self.couch_angle_range = tuple(float(a) for a in self.couch_angle_range)
        
        self._validate()
    
    def _validate(self) -> None:
        """Validate configuration parameters."""
        from .validation import InvalidConfigurationError
        
        for name in ('calibration_constant', 'couch_factor',
                     'source_axis_distance', 'source_calibration_distance'):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise InvalidConfigurationError(f"{name} must be positive, got {value}")
        
        if self.couch_factor > 1:
            raise InvalidConfigurationError(
                f"couch_factor is an attenuation and must not exceed 1, got {self.couch_factor}"
            )
        
        if len(self.couch_angle_range) != 2:
            raise InvalidConfigurationError(
                f"couch_angle_range must have two values, got {self.couch_angle_range}"
            )
        low, high = self.couch_angle_range
        if not 0 <= low <= high <= 360:
            raise InvalidConfigurationError(
                f"couch_angle_range must be ordered within [0, 360], got {self.couch_angle_range}"
            )
        
        if not 0 < self.tolerance < 1:
            raise InvalidConfigurationError(f"tolerance must be in (0, 1), got {self.tolerance}")
        
        if self.max_backward_days < 0:
            raise InvalidConfigurationError(
                f"max_backward_days must be non-negative, got {self.max_backward_days}"
            )
        
        for name in ('dose_rate_per_activity', 'mu_per_second'):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidConfigurationError(f"{name} must be positive, got {value}")
        
        if self.tpr_table_path is None or self.scp_table_path is None:
            raise InvalidConfigurationError(
                "No correction table path provided and bundled tables not found."
            )
    
    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'SecondCheckConfig':
        """Load configuration from YAML file.
        
        Args:
            yaml_path: Path to YAML configuration file
            
        Returns:
            SecondCheckConfig instance
        """
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        
        if 'couch_angle_range' in config_dict:
            config_dict['couch_angle_range'] = tuple(config_dict['couch_angle_range'])
        
        return cls(**config_dict)
    
    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML file.
        
        Args:
            yaml_path: Path to save YAML configuration
        """
        config_dict = {
            'calibration_constant': self.calibration_constant,
            'couch_factor': self.couch_factor,
            'couch_angle_range': list(self.couch_angle_range),
            'source_axis_distance': self.source_axis_distance,
            'source_calibration_distance': self.source_calibration_distance,
            'tpr_table_path': self.tpr_table_path,
            'scp_table_path': self.scp_table_path,
            'tolerance': self.tolerance,
            'max_backward_days': self.max_backward_days,
            'dose_rate_per_activity': self.dose_rate_per_activity,
            'mu_per_second': self.mu_per_second,
            'log_file': self.log_file,
        }
        
        Path(yaml_path).parent.mkdir(parents=True, exist_ok=True)
        with open(yaml_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)
    
    @staticmethod
    def get_default_config() -> 'SecondCheckConfig':
        """Get the default ViewRay configuration.
        
        Returns:
            SecondCheckConfig with default values
        """
        return SecondCheckConfig()
