"""HTTP Middleware"""
