"""KMSI School package.

Feature modules (attendance, examinations, certificates, payroll, grades,
books, audit, ...) hold the domain records with their rule sets, computed
views and report builders, plus thin service/repository/controller layers.
"""
