"""iterview: checkpoint working trees and review what changed since."""

__version__ = "0.3.0"
