from coach.model import ToolInfo

__version__ = "0.3.0"

TOOL = ToolInfo(name="coach", version=__version__)
