"""配置、日志、.env 热加载"""
