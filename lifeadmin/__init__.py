"""LIA Admin notification and status automation backend"""
