"""Setup script for Ridge-Code."""

from setuptools import setup, find_packages
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Ridge-Code - stream LLM output and push embedded commands to AIDIS"

setup(
    name='ridge-code',
    version='0.1.0',
    description='Interactive LLM client that extracts embedded commands and forwards them to AIDIS',
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    author='Ridge-Code Team',
    author_email='dev@example.com',

    packages=find_packages(include=['ridge_code', 'ridge_code.*']),
    python_requires='>=3.8',
    install_requires=[
        'requests>=2.31.0',
        'pydantic>=2.0.0',
        'click>=8.1.0',
        'python-dotenv>=1.0.0',
        'pyyaml>=6.0',
        'tomli>=2.0.0',
    ],

    extras_require={
        'openai': ['openai>=1.26.0'],
        'anthropic': ['anthropic>=0.18.0'],
        'all': ['openai>=1.26.0', 'anthropic>=0.18.0'],
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'requests-mock>=1.11.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.5.0',
        ],
    },

    entry_points={
        'console_scripts': [
            'ridge-code=ridge_code.cli:main',
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Topic :: Software Development',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],

    keywords='llm cli aidis mcp command-extraction',

    include_package_data=True,
    zip_safe=False,
)
