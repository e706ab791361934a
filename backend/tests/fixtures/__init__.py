"""Shared test fixtures"""
