"""
setup.py: Setup script for the card identifier scanner
"""

from setuptools import setup, find_packages

setup(
    name="card-id-scanner",
    version="0.1.0",
    description="Card number recognition with free local OCR and paid AI fallback",
    packages=find_packages(exclude=["cardscan.tests", "cardscan.tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "opencv-python>=4.8.0",
        "Pillow>=10.0.0",
        "numpy>=1.24.0",
        "pytesseract>=0.3.10",
        "python-Levenshtein>=0.21.1",
        "anthropic>=0.30.0",
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "slowapi>=0.1.9",
        "python-multipart>=0.0.6",
        "sqlalchemy>=2.0.0",
        "pydantic>=2.5.0",
        "click>=8.1.7",
        "python-dotenv>=1.0.0",
        "tqdm>=4.66.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'cardscan=cardscan.cli.main:cli',
        ],
    },
)
