"""
아크 그리드 코어 최적화 / 젬 가공 시뮬레이터
"""

__version__ = "0.1.0"
