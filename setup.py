"""
Setup configuration for the k8s-operator-tracing operator.

Reconciles Head → ChildA → Deployment and stitches every reconcile step into
one distributed trace per Head.
"""

from setuptools import setup, find_packages

setup(
    name="k8s-operator-tracing",
    version="0.1.0",
    description="Kubernetes operator with trace context propagated through resource annotations",
    author="Operator Tracing Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "kopf>=1.37.0",
        "kubernetes>=28.1.0,<37",
        "structlog>=23.1.0",
        "opentelemetry-api>=1.21.0",
        "opentelemetry-sdk>=1.21.0",
        "opentelemetry-exporter-otlp-proto-grpc>=1.21.0",
        "prometheus-client>=0.17.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "tenacity>=8.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.11.0",
            "pytest-cov>=4.1.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "operator-tracing=operator_tracing.operator.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
