"""
入口模块

使用方式:
    python -m bili_relay
"""

from bili_relay.main import run

if __name__ == "__main__":
    run()
