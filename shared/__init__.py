"""共享模块：配置、日志和数据模型"""
