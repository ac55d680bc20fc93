from .ats_checker import check_ats_friendliness

__all__ = ["check_ats_friendliness"]
