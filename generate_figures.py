"""
Generate figures for the dining philosophers evaluation.
Uses simulated runs (deterministic seeds), not stored results.

Generates:
- Figure 1: Eating timeline (N=5)
- Figure 2: Hunger wait vs number of philosophers
- Figure 3: Meals per philosopher (N=50)
"""
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
from matplotlib import rcParams

from core.properties import eating_intervals, hunger_waits
from scenarios import Scenario3, jain_index
from simulation import Dinner

# IEEE-style figure formatting
rcParams['font.family'] = 'serif'
rcParams['font.size'] = 10
rcParams['axes.labelsize'] = 10
rcParams['axes.titlesize'] = 11
rcParams['xtick.labelsize'] = 9
rcParams['ytick.labelsize'] = 9
rcParams['legend.fontsize'] = 9
rcParams['figure.titlesize'] = 11

OUTPUT = Path('./figures')


def figure1_eating_timeline(n: int = 5, seed: int = 42, window: int = 20_000):
    """Figure 1: who eats when. Neighbouring bars never overlap."""
    dinner = Dinner(n, seed=seed).run(max_time=window)
    intervals = eating_intervals(dinner.trace(), n, end_time=dinner.time)

    fig, ax = plt.subplots(figsize=(7, 3))
    colours = plt.cm.tab10(np.arange(n))
    for agent, meals in enumerate(intervals):
        bars = [(start, end - start) for start, end in meals]
        ax.broken_barh(bars, (agent - 0.4, 0.8), facecolors=colours[agent])

    ax.set_yticks(range(n))
    ax.set_yticklabels([f'P{i}' for i in range(n)])
    ax.set_xlabel('Simulated time (ms)')
    ax.set_title(f'Eating Timeline ($n={n}$, seed {seed})')
    ax.set_xlim(0, dinner.time)
    ax.grid(True, axis='x', alpha=0.3, linestyle='--')

    plt.tight_layout()
    plt.savefig(OUTPUT / 'fig1_eating_timeline.pdf', dpi=300, bbox_inches='tight')
    plt.savefig(OUTPUT / 'fig1_eating_timeline.png', dpi=300, bbox_inches='tight')
    print("✓ Figure 1 saved: fig1_eating_timeline.pdf/png")
    plt.close()


def figure2_hunger_scaling(n_values=(2, 5, 10, 20, 50), n_replications: int = 5):
    """Figure 2: mean hunger wait against table size, with a linear fit."""
    scenario = Scenario3(duration=100_000)
    results = scenario.run_experiment(list(n_values), n_replications=n_replications)
    scaling = scenario.analyze_scaling(results)

    n_vals = np.array(n_values)
    means = np.array([results[n]['mean_wait']['mean'] for n in n_values])
    stds = np.array([results[n]['mean_wait']['std'] for n in n_values])

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.errorbar(n_vals, means, yerr=stds, fmt='o', markersize=7,
                color='#1976D2', capsize=4, label='Measured')
    n_fit = np.linspace(n_vals.min(), n_vals.max(), 100)
    ax.plot(n_fit, scaling['slope'] * n_fit + scaling['intercept'], '--',
            color='#C62828', linewidth=1.5,
            label=f"{scaling['equation']} ($R^2$={scaling['r_squared']:.2f})")

    ax.set_xlabel('Number of philosophers $n$')
    ax.set_ylabel('Hunger wait (ms)')
    ax.set_title('Waiting Time as Function of Table Size')
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3, linestyle='--')

    plt.tight_layout()
    plt.savefig(OUTPUT / 'fig2_hunger_scaling.pdf', dpi=300, bbox_inches='tight')
    plt.savefig(OUTPUT / 'fig2_hunger_scaling.png', dpi=300, bbox_inches='tight')
    print("✓ Figure 2 saved: fig2_hunger_scaling.pdf/png")
    plt.close()


def figure3_meal_fairness(n: int = 50, seed: int = 0, duration: int = 200_000):
    """Figure 3: meals per philosopher and the fairness index."""
    dinner = Dinner(n, seed=seed).run(max_time=duration)
    meals = dinner.meals()
    waits = hunger_waits(dinner.trace(), n)
    mean_waits = [np.mean(w) if w else 0.0 for w in waits]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(7, 5), sharex=True)
    ax1.bar(range(n), meals, color='#2E7D32', alpha=0.8)
    ax1.axhline(np.mean(meals), color='black', linestyle=':', linewidth=1)
    ax1.set_ylabel('Meals')
    ax1.set_title(f"Meals per Philosopher ($n={n}$, Jain index {jain_index(meals):.3f})")
    ax1.grid(True, axis='y', alpha=0.3, linestyle='--')

    ax2.bar(range(n), mean_waits, color='#1976D2', alpha=0.8)
    ax2.set_xlabel('Philosopher')
    ax2.set_ylabel('Mean hunger wait (ms)')
    ax2.grid(True, axis='y', alpha=0.3, linestyle='--')

    plt.tight_layout()
    plt.savefig(OUTPUT / 'fig3_meal_fairness.pdf', dpi=300, bbox_inches='tight')
    plt.savefig(OUTPUT / 'fig3_meal_fairness.png', dpi=300, bbox_inches='tight')
    print("✓ Figure 3 saved: fig3_meal_fairness.pdf/png")
    plt.close()


def generate_all_figures():
    """Generate all 3 figures"""
    print("Generating figures for the dining philosophers evaluation...\n")
    OUTPUT.mkdir(parents=True, exist_ok=True)

    figure1_eating_timeline()
    figure2_hunger_scaling()
    figure3_meal_fairness()

    print("\n✓ All figures generated successfully!")
    print(f"\nOutput location: {OUTPUT}/")
    print("Files generated:")
    print("  - fig1_eating_timeline.pdf/.png")
    print("  - fig2_hunger_scaling.pdf/.png")
    print("  - fig3_meal_fairness.pdf/.png")


if __name__ == "__main__":
    generate_all_figures()
