from setuptools import find_packages, setup


install_requires = (
    "aiohttp>=3.9",
    "apolo-kube-client>=25.9",
    "neuro-logging>=24.4",
    "trafaret>=2.1",
    "iso8601>=2.1",
    "orjson>=3.10",
    "yarl>=1.9",
)

tests_require = (
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
)

setup(
    name="platform-pod-logs",
    version="1.0.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=install_requires,
    extras_require={"dev": tests_require},
    python_requires=">=3.12",
    entry_points={
        "console_scripts": ["platform-pod-logs=platform_pod_logs.api:main"]
    },
    zip_safe=False,
)
