# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    parent = os.path.dirname(outpath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_counters(stats, outpath):
    _ensure_dir(outpath)
    labels = ['hit', 'miss', 'swap']
    counts = [stats[k] for k in labels]
    plt.figure(figsize=(5,4))
    bars = plt.bar(labels, counts, color=['tab:green', 'tab:red', 'tab:orange'])
    plt.bar_label(bars)
    plt.title(f"{stats['set_capacity']}-way, {stats['num_sets']} sets, {stats['line_size']}B lines")
    plt.ylabel("Count")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hit_miss_rate(stats, outpath):
    """
    Share of line lookups that hit, missed into a free way, or missed and
    evicted a resident line.
    """
    _ensure_dir(outpath)
    plt.figure(figsize=(5,4))
    sizes = [stats['hit'], stats['miss'] - stats['swap'], stats['swap']]
    labels = ['Hit', 'Miss (free way)', 'Miss (eviction)']
    if stats['accesses']:
        plt.pie(sizes, labels=labels, autopct='%1.1f%%',
                colors=['tab:green', 'tab:red', 'tab:orange'])
    else:
        plt.text(0.5, 0.5, "no accesses", ha='center', va='center')
        plt.axis('off')
    plt.title(f"Hit rate {stats['hit_rate']:.1%} "
              f"({stats['set_capacity']}-way, {stats['num_sets']} sets)")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_associativity_sweep(results, outpath):
    # results: {set_capacity: stats}
    _ensure_dir(outpath)
    capacities = sorted(results)
    hit_rates = [results[c]["hit_rate"] for c in capacities]
    plt.figure(figsize=(6,4))
    plt.plot(capacities, hit_rates, marker='o')
    plt.xscale('log', base=2)
    plt.xticks(capacities, [str(c) for c in capacities])
    plt.title("Hit Rate vs Associativity")
    plt.xlabel("Set capacity (ways)")
    plt.ylabel("Hit rate")
    plt.ylim(0, 1)
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
