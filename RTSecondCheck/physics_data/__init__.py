"""Physics data package containing the bundled correction tables.

The TPR and Scp tables for the ViewRay Co-60 heads are shipped with the
package so a calculation can run without any site configuration.
"""

from pathlib import Path


def get_physics_data_dir() -> Path:
    """Get the physics data directory path.
    
    Returns:
        Path to the physics_data directory
    """
    return Path(__file__).parent


def get_table_path(table_name: str) -> Path:
    """Get path to a bundled correction table file.
    
    Args:
        table_name: Name of the CSV file (e.g. 'ViewRay_TPR.csv')
        
    Returns:
        Path to the table file
        
    Raises:
        FileNotFoundError: If the table file doesn't exist
    """
    table_path = get_physics_data_dir() / 'calc_data' / table_name
    if not table_path.exists():
        raise FileNotFoundError(
            f"Correction table not found: {table_path}\n"
            f"Available tables: {list_tables()}"
        )
    return table_path


def list_tables() -> list:
    """List all bundled correction tables.
    
    Returns:
        List of table filenames
    """
    data_dir = get_physics_data_dir() / 'calc_data'
    if not data_dir.exists():
        return []
    return sorted(f.name for f in data_dir.glob('*.csv'))


try:
    DEFAULT_TPR_TABLE = str(get_table_path('ViewRay_TPR.csv'))
except FileNotFoundError:
    DEFAULT_TPR_TABLE = None

try:
    DEFAULT_SCP_TABLE = str(get_table_path('ViewRay_Scp.csv'))
except FileNotFoundError:
    DEFAULT_SCP_TABLE = None


__all__ = [
    'get_physics_data_dir',
    'get_table_path',
    'list_tables',
    'DEFAULT_TPR_TABLE',
    'DEFAULT_SCP_TABLE',
]
